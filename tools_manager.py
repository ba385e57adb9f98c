import logging
from typing import Any, Dict, List, Optional, Union

from models import ToolDefinition

logger = logging.getLogger(__name__)


class InvalidToolDefinition(ValueError):
    """ツール定義が不正"""


class ToolsManager:
    """ツール定義の一元管理クラス"""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, name: str, definition: Union[ToolDefinition, Dict[str, Any]]) -> ToolDefinition:
        """ツール登録（同名は置き換え）"""
        if not isinstance(name, str) or not name.strip():
            raise InvalidToolDefinition("Tool name must be a non-empty string")

        if isinstance(definition, ToolDefinition):
            fields = {key: getattr(definition, key) for key in ToolDefinition.model_fields}
        elif isinstance(definition, dict):
            fields = dict(definition)
        else:
            raise InvalidToolDefinition(f"Tool definition for '{name}' must be a ToolDefinition or dict")

        if not callable(fields.get("call")):
            raise InvalidToolDefinition(f"Tool definition for '{name}' must include call()")

        fields["name"] = name
        try:
            tool = ToolDefinition(**fields)
        except Exception as e:
            raise InvalidToolDefinition(f"Invalid definition for tool '{name}': {e}") from e

        replaced = name in self._tools
        self._tools[name] = tool
        logger.info(f"[ToolsManager] {'Replaced' if replaced else 'Registered'} tool: {name}")
        return tool

    def unregister(self, name: str) -> bool:
        """ツール登録解除"""
        removed = self._tools.pop(name, None) is not None
        if removed:
            logger.info(f"[ToolsManager] Unregistered tool: {name}")
        return removed

    def list(self) -> List[Dict[str, Any]]:
        """tools/list用のツール一覧（call は含めない）"""
        return [tool.describe() for tool in list(self._tools.values())]

    def get(self, name: str) -> Optional[ToolDefinition]:
        """ツール名から定義を取得"""
        if not isinstance(name, str):
            return None
        return self._tools.get(name)

    def is_valid_tool(self, tool_name: str) -> bool:
        """ツール名の有効性チェック"""
        return self.get(tool_name) is not None

    def get_tool_names(self) -> List[str]:
        """全ツール名のリスト"""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)
