import traceback

from decouple import config
from flasgger import Swagger
from flask import Flask, current_app, jsonify

from shared.crypto.clients.erc20 import TokenClient
from shared.logger import setup_logging
from sweeper import service
from sweeper.auth import api_secret_required
from sweeper.config import RuntimeConfig, Settings, resolve_runtime_config
from sweeper.errors import NO_DETAILS, ConfigurationError, SweeperError


def connect_token_client(runtime: RuntimeConfig) -> TokenClient:
    try:
        return TokenClient.connect(
            runtime.rpc_url,
            runtime.profile.token_contract_address,
            runtime.private_key,
            rpc_timeout=runtime.rpc_timeout,
            receipt_timeout=runtime.receipt_timeout,
        )
    except ValueError as e:
        # never echo the key material itself
        raise ConfigurationError("Invalid WALLET_PRIVATE_KEY") from e


def _client_for_request():
    runtime = resolve_runtime_config(current_app.config["SWEEPER_SETTINGS"])
    return current_app.config["TOKEN_CLIENT_FACTORY"](runtime), runtime


def sweep_status():
    """Health check: balances and resolved configuration, never transfers
    ---
    tags:
      - sweep
    parameters:
      - in: header
        name: x-api-secret
        type: string
        required: true
    responses:
      200:
        description: Current wallet status
      401:
        description: Missing or wrong API secret
      500:
        description: Configuration or RPC failure
    """
    try:
        client, runtime = _client_for_request()
        return jsonify(service.health_report(client, runtime)), 200
    except Exception as e:
        current_app.logger.error(f"Health check failed: {e}")
        message = e.message if isinstance(e, SweeperError) else (str(e) or "Unknown error occurred")
        return jsonify({"status": "error", "error": message}), 500


def sweep_trigger():
    """Sweep the whole token balance when it is at or above the threshold
    ---
    tags:
      - sweep
    parameters:
      - in: header
        name: x-api-secret
        type: string
        required: true
    responses:
      200:
        description: Transfer confirmed, or balance below threshold (success false)
      401:
        description: Missing or wrong API secret
      500:
        description: Configuration, RPC or transaction failure
    """
    try:
        client, runtime = _client_for_request()
    except ConfigurationError as e:
        current_app.logger.error(f"Configuration error: {e.message}")
        return jsonify({"error": e.message}), e.status_code

    try:
        reading, result = service.sweep(client, runtime)
        if result is None:
            return jsonify({
                "success": False,
                "message": "Balance below threshold",
                "balance": reading.formatted,
                "threshold": runtime.threshold_display,
                "walletAddress": client.address,
            }), 200

        return jsonify({
            "success": True,
            "message": f"{runtime.profile.token_symbol} transferred successfully",
            "amount": result.formatted_amount,
            "transactionHash": result.transaction_hash,
            "blockNumber": result.block_number,
            "from": result.from_address,
            "to": result.to_address,
        }), 200
    except SweeperError as e:
        current_app.logger.error(f"Sweep failed: {e.message}")
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Sweep failed: {e}")
        current_app.logger.error(traceback.format_exc())
        return jsonify({
            "success": False,
            "error": str(e) or "Unknown error occurred",
            "details": NO_DETAILS,
        }), 500


def create_app(settings: Settings = None, client_factory=None) -> Flask:
    app = Flask(__name__)
    setup_logging(app.name)
    Swagger(app)

    settings = settings or Settings.from_env()
    app.config["SWEEPER_SETTINGS"] = settings
    app.config["TOKEN_CLIENT_FACTORY"] = client_factory or connect_token_client

    for problem in settings.problems():
        app.logger.error(f"❌ {problem}")

    for rule in ("/sweep", "/api/sweep"):
        app.add_url_rule(rule, view_func=api_secret_required(sweep_status), methods=["GET"],
                         endpoint=f"{rule}:status")
        app.add_url_rule(rule, view_func=api_secret_required(sweep_trigger), methods=["POST"],
                         endpoint=f"{rule}:trigger")
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host=config("HOST", default="0.0.0.0"), port=config("PORT", default=5000, cast=int),
            threaded=True)
