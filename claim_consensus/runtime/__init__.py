"""
运行时
Process-scoped task store, agent registry and task executor.
"""
