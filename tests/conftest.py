from unittest.mock import AsyncMock, MagicMock

import pytest

from supertx.types.info import NodeInfo
from supertx.types.quote import Quote

from tests.factories import make_account, node_info_payload, quote_payload


@pytest.fixture
def account():
    return make_account()


@pytest.fixture
def node_info() -> NodeInfo:
    return NodeInfo.model_validate(node_info_payload())


@pytest.fixture
def fake_node(node_info):
    """MeeNodeProvider stand-in that answers info and quote requests."""
    node = MagicMock()
    node.get_info = AsyncMock(return_value=node_info)
    node.get_quote = AsyncMock(return_value=Quote.model_validate(quote_payload()))
    node.execute = AsyncMock()
    node.get_explorer = AsyncMock()
    return node
