import runpy
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import API_SECRET, TX_HASH
from shared.logger import JSONFormatter
from sweeper.errors import NetworkError, TransactionError

TOKENS = 10 ** 6


class TestAuthentication:
    @pytest.mark.parametrize("method", ["get", "post"])
    @pytest.mark.parametrize("headers", [
        {},
        {"x-api-secret": ""},
        {"x-api-secret": "wrong"},
        {"x-api-secret": API_SECRET.upper()},
        {"x-api-secret": f"{API_SECRET}x"},
    ])
    def test_rejected_before_any_network_call(self, client, token_client, factory_calls, method, headers):
        response = getattr(client, method)("/sweep", headers=headers)

        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}
        assert factory_calls == []
        assert token_client.calls == []

    def test_unconfigured_secret_rejects_everything(self, make_client, factory_calls):
        client = make_client(api_secret=None)
        response = client.post("/sweep", headers={"x-api-secret": "anything"})
        assert response.status_code == 401
        assert factory_calls == []

    def test_get_without_secret_leaks_nothing(self, client, token_client):
        token_client.balance = 500 * TOKENS
        body = client.get("/sweep").get_data(as_text=True)
        assert token_client.address not in body
        assert "500" not in body


class TestSweepTrigger:
    def test_below_threshold(self, client, token_client, auth_headers):
        token_client.balance = 50 * TOKENS
        response = client.post("/sweep", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json() == {
            "success": False,
            "message": "Balance below threshold",
            "balance": "50.0",
            "threshold": "100",
            "walletAddress": token_client.address,
        }
        assert token_client.transfers == []

    def test_sweeps_full_balance(self, client, token_client, auth_headers, factory_calls):
        token_client.balance = 150 * TOKENS
        response = client.post("/api/sweep", headers=auth_headers)
        body = response.get_json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["message"] == "USDC transferred successfully"
        assert body["amount"] == "150.0"
        assert body["transactionHash"].startswith("0x")
        assert body["blockNumber"] == 1235
        assert body["from"] == token_client.address
        assert body["to"] == factory_calls[0].destination_address
        assert token_client.transfers == [(factory_calls[0].destination_address, 150 * TOKENS)]

    def test_missing_private_key(self, make_client, factory_calls, auth_headers):
        client = make_client(private_key=None)
        response = client.post("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json() == {"error": "WALLET_PRIVATE_KEY not configured"}
        assert factory_calls == []

    def test_missing_destination(self, make_client, auth_headers):
        response = make_client(destination_wallet=None).post("/sweep", headers=auth_headers)
        assert response.status_code == 500
        assert response.get_json() == {"error": "DESTINATION_WALLET not configured"}

    def test_transaction_failure_carries_details(self, client, token_client, auth_headers):
        token_client.balance = 150 * TOKENS
        token_client.receipt_error = TransactionError("Transaction reverted", details=f"{TX_HASH} reverted")
        response = client.post("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json() == {
            "success": False,
            "error": "Transaction reverted",
            "details": f"{TX_HASH} reverted",
        }

    def test_chain_mismatch_refuses_to_sweep(self, client, token_client, auth_headers):
        token_client.balance = 150 * TOKENS
        token_client._chain_id = 1
        response = client.post("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json()["success"] is False
        assert "expected 8453" in response.get_json()["error"]
        assert token_client.transfers == []

    def test_unexpected_error_has_default_details(self, client, token_client, auth_headers):
        def boom():
            raise RuntimeError("decoder exploded")

        token_client.token_balance = boom
        response = client.post("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json() == {
            "success": False,
            "error": "decoder exploded",
            "details": "No additional details",
        }


class TestSweepStatus:
    def test_health_ok(self, client, token_client, auth_headers):
        token_client.balance = 12 * TOKENS
        response = client.get("/sweep", headers=auth_headers)
        body = response.get_json()

        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["network"] == "Base"
        assert body["chainId"] == 8453
        assert body["usdcBalance"] == "12.0"
        assert body["ethBalance"] == "0.01"
        assert body["threshold"] == "100"
        assert token_client.transfers == []

    def test_health_guards_missing_private_key(self, make_client, factory_calls, auth_headers):
        response = make_client(private_key=None).get("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json() == {"status": "error", "error": "WALLET_PRIVATE_KEY not configured"}
        assert factory_calls == []

    def test_health_rpc_failure(self, client, token_client, auth_headers):
        def unreachable():
            raise NetworkError("Failed to read chain id: connection refused")

        token_client.chain_id = unreachable
        response = client.get("/sweep", headers=auth_headers)

        assert response.status_code == 500
        assert response.get_json() == {
            "status": "error",
            "error": "Failed to read chain id: connection refused",
        }


class TestAppLogging:
    def test_app_logger_uses_json_formatter(self, make_client):
        app = make_client().application
        assert isinstance(app.logger.handlers[0].formatter, JSONFormatter)

    def test_script_entry_point_logs_json(self, monkeypatch):
        monkeypatch.setenv("API_SECRET", API_SECRET)
        with patch("flask.Flask.run") as run:
            namespace = runpy.run_path(str(Path(__file__).parents[1] / "app.py"), run_name="__main__")

        app = namespace["app"]
        run.assert_called_once()
        assert isinstance(app.logger.handlers[0].formatter, JSONFormatter)
