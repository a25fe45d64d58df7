"""
Browser Relay

將 AI Agent 的 MCP Tool 呼叫轉送到已連線的瀏覽器端 Client。
"""

__version__ = "1.0.0"
