from types import SimpleNamespace

import pytest


@pytest.fixture
def credential():
    return SimpleNamespace(
        id=7,
        user_id=1,
        account_id="acct-123",
        account_name="Ada Lovelace",
        access_token="access-token",
        refresh_token=None,
    )
