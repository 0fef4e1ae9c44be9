import pytest

from tznft.base58 import b58check_encode
from tznft.config import DEFAULT_CONFIG, ConfigStore

BOB_ADDRESS = "tz1aSkwEot3L2kmUvcoxzjMomb9mvBNuzFK6"
BOB_SECRET = "edsk3RFfvaFaxbHx8BMtEW1rKQcPtDML3LXjNqMNLCzC3wLC1bWbAt"
ALICE_ADDRESS = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"


def make_address(kind: str = "tz1", fill: int = 1) -> str:
    return b58check_encode(kind, bytes([fill]) * 20)


@pytest.fixture
def config() -> ConfigStore:
    return ConfigStore(DEFAULT_CONFIG)


@pytest.fixture
def nft_address() -> str:
    return make_address("KT1", 7)
