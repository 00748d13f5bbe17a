"""
WeMall 核心包
"""
__version__ = "1.0.0"
