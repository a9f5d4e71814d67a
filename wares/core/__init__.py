"""核心层：清单解析 / 版本解析 / 锁文件 / 缓存安装 / 同步编排"""
