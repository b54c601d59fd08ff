"""基础设施: 配置与评分引擎"""
