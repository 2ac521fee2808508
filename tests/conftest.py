import pytest

from state_tools import scoped


@pytest.fixture(autouse=True)
def isolated_context():
    """Every test gets its own default observer/storage context."""
    with scoped() as ctx:
        yield ctx
