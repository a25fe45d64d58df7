"""
資料模型定義

包含 MCPError 錯誤體系與各 Tool 回傳結果的結構
"""
from typing import Any, NotRequired, TypedDict

# ═══════════════════════════════════════════════════════════════════════════════
# JSON-RPC 錯誤碼
# ═══════════════════════════════════════════════════════════════════════════════
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
NO_CLIENT_CONNECTED = -32001
REQUEST_TIMEOUT = -32002


class MCPError(Exception):
    """MCP 協議專用的錯誤類型"""

    code: int = INTERNAL_ERROR
    kind: str = "InternalError"

    def __init__(
        self,
        message: str,
        data: dict[str, Any] | None = None,
        code: int | None = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_error(self) -> dict[str, Any]:
        """轉換為 JSON-RPC error 物件"""
        data = {"error": self.kind}
        if self.data:
            data.update(self.data)
        return {"code": self.code, "message": self.message, "data": data}


class ParseError(MCPError):
    """請求內容不是合法 JSON"""

    code = PARSE_ERROR
    kind = "ParseError"


class InvalidRequestError(MCPError):
    """JSON 合法但不是 JSON-RPC 請求物件"""

    code = INVALID_REQUEST
    kind = "InvalidRequest"


class MethodNotFoundError(MCPError):
    code = METHOD_NOT_FOUND
    kind = "MethodNotFound"


class UnknownToolError(MCPError):
    code = METHOD_NOT_FOUND
    kind = "UnknownTool"


class InvalidArgumentError(MCPError):
    """Tool 必要參數缺失或型別錯誤"""

    code = INVALID_PARAMS
    kind = "InvalidArgument"


class NoClientConnectedError(MCPError):
    """沒有可用的瀏覽器 Client"""

    code = NO_CLIENT_CONNECTED
    kind = "NoClientConnected"


class RelayTimeoutError(MCPError):
    """瀏覽器 Client 未在時限內回應"""

    code = REQUEST_TIMEOUT
    kind = "Timeout"


# ═══════════════════════════════════════════════════════════════════════════════
# Tool 回傳結果（由瀏覽器 Client 產生，原樣轉交呼叫端）
# ═══════════════════════════════════════════════════════════════════════════════
class PageInfo(TypedDict):
    title: str
    url: str
    path: str
    timestamp: str


class ElementPosition(TypedDict):
    x: float
    y: float


class ClickableElement(TypedDict):
    name: str
    selector: str
    text: str
    type: str
    visible: bool
    position: NotRequired[ElementPosition]


class ClickResult(TypedDict):
    success: bool
    elementName: str
    message: str
    newUrl: NotRequired[str]


class NavigationResult(TypedDict):
    success: bool
    targetPage: str
    currentUrl: str
    message: str


class BookingFormResult(TypedDict):
    success: bool
    fieldsUpdated: list[str]
    message: str
    validationErrors: NotRequired[list[str]]
