from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_identity, json_body, login_required
from ..container import Container
from .model import policy_to_dict


def register(app: Flask, container: Container) -> None:
    @app.route("/api/policy", methods=["GET"], endpoint="get_policy")
    @login_required
    def get_policy():
        return jsonify(policy_to_dict(container.policy_service.get_current_policy()))

    @app.route("/api/policy", methods=["PUT"], endpoint="update_policy")
    @login_required
    def update_policy():
        policy = container.policy_service.set_policy(current_identity(), json_body())
        return jsonify({"success": True, "policy": policy_to_dict(policy)})
