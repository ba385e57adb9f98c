"""
ServerContext - レジストリと検索アダプタ設定を保持するサーバー単位のコンテキスト
"""

import logging
from typing import Any, Callable, Dict, Optional

from config import SERVER_CONFIG, TYPESENSE_CONFIG
from models import TypesenseSettings
from server.dispatcher import Dispatcher
from tools import register_builtin_tools
from tools.typesense_search import TypesenseSearchAdapter
from tools_manager import ToolsManager
from utils.typesense_client import TypesenseClient

logger = logging.getLogger(__name__)


class ServerContext:
    def __init__(
        self,
        registry: ToolsManager,
        search_adapter: TypesenseSearchAdapter,
        server_config: Optional[Dict[str, Any]] = None,
    ):
        self.registry = registry
        self.search_adapter = search_adapter
        self.server_config = server_config or SERVER_CONFIG
        self.dispatcher = Dispatcher(registry, self.server_config)


def create_context(
    typesense_settings: Optional[TypesenseSettings] = None,
    client_factory: Callable[[TypesenseSettings], Any] = TypesenseClient,
    server_config: Optional[Dict[str, Any]] = None,
) -> ServerContext:
    """組み込みツール登録済みのコンテキストを生成"""
    settings = typesense_settings or TypesenseSettings(**TYPESENSE_CONFIG)
    adapter = TypesenseSearchAdapter(settings, client_factory=client_factory)
    registry = ToolsManager()
    register_builtin_tools(registry, adapter)

    if not settings.configured:
        logger.warning("[create_context] TYPESENSE_HOST or API key missing; typesense_search will degrade")
    logger.info(f"[create_context] Registered tools: {registry.get_tool_names()}")
    return ServerContext(registry, adapter, server_config)
