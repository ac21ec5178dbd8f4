"""
A2A 协议层
Agent-to-agent JSON-RPC protocol: errors, dispatcher, client and polling.
"""
