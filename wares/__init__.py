"""wares - 面向原生构建系统的 git 依赖拉取引擎"""

__version__ = "0.1.0"
