"""服务层: CLI 与构建系统插件共享的调用入口"""
