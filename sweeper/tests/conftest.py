import pytest

from sweeper.app import create_app
from sweeper.config import Settings

API_SECRET = "test-secret"
DESTINATION = "0xfd1de6af6abb6f4c553c59399942505ca779cfbb"
SIGNER = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
TX_HASH = "0x" + "ab" * 32


class FakeTokenClient:
    """In-memory stand-in for TokenClient; balances only move once a receipt is fetched"""

    def __init__(self, balance=0, decimals=6, chain_id=8453, native_balance=10 ** 16,
                 address=SIGNER, block_number=1234):
        self.address = address
        self.balance = balance
        self.decimals = decimals
        self._chain_id = chain_id
        self._native_balance = native_balance
        self.block_number = block_number
        self.transfers = []
        self.pending = {}
        self.transfer_error = None
        self.receipt_error = None
        self.calls = []

    def chain_id(self):
        self.calls.append("chain_id")
        return self._chain_id

    def native_balance(self):
        self.calls.append("native_balance")
        return self._native_balance

    def token_balance(self):
        self.calls.append("token_balance")
        return self.balance

    def token_decimals(self):
        self.calls.append("token_decimals")
        return self.decimals

    def transfer(self, to_address, amount):
        self.calls.append("transfer")
        if self.transfer_error:
            raise self.transfer_error
        tx_hash = "0x" + f"{len(self.transfers) + 1:064x}"
        self.transfers.append((to_address, amount))
        self.pending[tx_hash] = amount
        return tx_hash

    def wait_for_receipt(self, tx_hash):
        self.calls.append("wait_for_receipt")
        if self.receipt_error:
            raise self.receipt_error
        self.balance -= self.pending.pop(tx_hash)
        self.block_number += 1
        return {"blockNumber": self.block_number, "status": 1, "transactionHash": tx_hash}


def make_settings(**overrides):
    values = dict(
        network="base",
        private_key="0x" + "11" * 32,
        destination_wallet=DESTINATION,
        api_secret=API_SECRET,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def token_client():
    return FakeTokenClient()


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def make_client(token_client, factory_calls):
    def build(**overrides):
        def factory(runtime):
            factory_calls.append(runtime)
            return token_client

        app = create_app(make_settings(**overrides), client_factory=factory)
        app.config["TESTING"] = True
        return app.test_client()

    return build


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def auth_headers():
    return {"x-api-secret": API_SECRET}
