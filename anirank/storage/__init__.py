"""会话快照存储"""
