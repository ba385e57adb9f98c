"""
QIQ MCP Tools

  ping                  - 疎通確認
  typesense_search      - 商品検索（ID / キーワード）
  qiq_scoring           - 価格ベースのスコアリング
  typesense_config_set  - Typesense 設定の実行時変更
  typesense_health      - Typesense 接続診断
"""

from tools.ping import PING_TOOL
from tools.qiq_scoring import QIQ_SCORING_TOOL
from tools.typesense_admin import build_config_set_tool, build_health_tool
from tools.typesense_search import TypesenseSearchAdapter, build_typesense_search_tool
from tools_manager import ToolsManager


def register_builtin_tools(registry: ToolsManager, adapter: TypesenseSearchAdapter) -> None:
    """組み込みツールを登録"""
    for tool in (
        PING_TOOL,
        build_typesense_search_tool(adapter),
        QIQ_SCORING_TOOL,
        build_config_set_tool(adapter),
        build_health_tool(adapter),
    ):
        registry.register(tool.name, tool)
