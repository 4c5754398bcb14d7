#!/usr/bin/env python3
"""
Flask web demo for the leasing contract

One page with a "Connect wallet" button, plus JSON endpoints for connecting,
creating a lease and reading a lease back. The wallet lives on the server
(WALLET_SECRET); the connected session is kept in memory for the lifetime of
the app.
"""

import os

from flask import Flask, jsonify, render_template, request

from ..common import NETWORK_PASSPHRASES, Settings, get_logger, load_settings
from ..errors import LeaseClientError, NetworkUnreachableError
from ..lease_api import LeaseAPI
from ..wallet import KeypairWallet, WalletBridge, WalletProvider

logger = get_logger(__name__)

base_dir = os.path.dirname(os.path.abspath(__file__))


def create_app(provider: WalletProvider = None, api: LeaseAPI = None, settings: Settings = None) -> Flask:
    """
    Build the demo app.

    Args:
        provider: Wallet provider; built from WALLET_SECRET when omitted
        api: LeaseAPI; built from the settings when omitted
        settings: Client settings; read from the environment when omitted
    """
    settings = settings or load_settings()
    if provider is None and settings.wallet_secret:
        passphrases = {**NETWORK_PASSPHRASES, settings.network: settings.network_passphrase}
        provider = KeypairWallet(settings.wallet_secret, passphrases=passphrases)

    notices = []
    bridge = WalletBridge(provider, notify=notices.append)
    api = api or LeaseAPI.from_settings(settings)
    state = {"session": None}

    app = Flask(__name__, template_folder=os.path.join(base_dir, "templates"))

    @app.errorhandler(LeaseClientError)
    def lease_client_error(e):
        status = 502 if isinstance(e, NetworkUnreachableError) else 400
        logger.warning("Request failed: %s", e.message)
        return jsonify({"success": False, "error": e.message}), status

    @app.route("/")
    def index():
        """Serve the main demo page"""
        return render_template("index.html", contract_id=api.contract_id, network=api.network)

    @app.route("/api/connect-wallet", methods=["POST"])
    def connect_wallet():
        notices.clear()
        session = bridge.connect()
        state["session"] = session
        if session is None:
            error = notices[-1] if notices else "Wallet not connected"
            return jsonify({"success": False, "error": error}), 400
        return jsonify({"success": True, "public_key": session.public_key})

    @app.route("/api/create-lease", methods=["POST"])
    def create_lease():
        data = request.get_json(silent=True) or {}
        missing = [k for k in ("asset_id", "duration", "price") if k not in data]
        if missing:
            return jsonify({"success": False, "error": f"Missing fields: {', '.join(missing)}"}), 400

        submission = api.create_lease(bridge, state["session"], data["asset_id"], data["duration"], data["price"])
        return jsonify({
            "success": True,
            "hash": submission.tx_hash,
            "status": submission.status.value,
        })

    @app.route("/api/lease-status/<int:lease_id>", methods=["GET"])
    def lease_status(lease_id):
        public_key = bridge.get_public_key(state["session"])
        lease = api.get_lease_status(lease_id, public_key)
        if lease is None:
            return jsonify({"success": False, "error": f"No lease with ID {lease_id}"}), 404
        return jsonify({"success": True, "lease": lease})

    return app


if __name__ == "__main__":
    # For local development
    create_app().run(debug=True, host="127.0.0.1", port=5000)
