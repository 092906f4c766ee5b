"""User Console - 用户管理控制台客户端。"""
__version__ = "0.1.0"
