"""目录加载与结果导出"""
