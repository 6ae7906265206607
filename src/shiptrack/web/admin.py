"""Admin login and shipment management routes."""

import logging

from flask import g, jsonify, redirect, render_template_string, request
from flask_limiter import Limiter

from ..exceptions import AuthenticationError, ValidationError
from .auth import check_credentials, current_claims, issue_token, require_auth

logger = logging.getLogger(__name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_admin_routes(app, limiter: Limiter):
    """Register login and shipment API routes to the Flask app."""
    auth_config = app.settings.auth

    @app.route('/admin/login', methods=['POST'])
    @limiter.limit(app.settings.rate_limit.login, override_defaults=False)
    def login():
        """Exchange admin credentials for a JWT (also set as a cookie)."""
        data = request.get_json(silent=True) or {}
        username = data.get('username')
        password = data.get('password')
        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            raise ValidationError("Username and password are required")

        if not check_credentials(auth_config, username, password):
            logger.warning(f"Failed admin login for '{username}' from {request.remote_addr}")
            raise AuthenticationError("Invalid credentials")

        token = issue_token(auth_config, username)
        response = jsonify({
            "success": True,
            "message": "Login successful",
            "user": {"username": username},
            "token": token,
        })
        response.set_cookie(
            auth_config.cookie_name,
            token,
            max_age=auth_config.token_ttl_hours * 3600,
            secure=auth_config.cookie_secure,
            httponly=auth_config.cookie_httponly,
            samesite='Lax',
        )
        logger.info(f"Admin '{username}' logged in")
        return response, 200

    @app.route('/admin/logout', methods=['POST'])
    def logout():
        response = jsonify({"success": True, "message": "Logout successful"})
        response.delete_cookie(auth_config.cookie_name, samesite='Lax')
        return response, 200

    @app.route('/admin/check-auth', methods=['GET'])
    def check_auth():
        claims = current_claims()
        if claims is None:
            return jsonify({"authenticated": False}), 200
        return jsonify({"authenticated": True, "user": {"username": claims["username"]}}), 200

    @app.route('/admin', methods=['GET'])
    def admin_root():
        if current_claims() is not None:
            return redirect('/admin/dashboard')
        return redirect('/admin/login')

    @app.route('/admin/login', methods=['GET'])
    def login_page():
        return render_template_string(LOGIN_HTML)

    @app.route('/admin/api/shipments', methods=['GET'])
    @require_auth
    def list_shipments():
        """List shipments, newest first; ``?status=`` filters."""
        shipments = app.service.list_shipments(request.args.get('status'))
        return jsonify({"success": True, "data": [s.to_dict() for s in shipments]}), 200

    @app.route('/admin/api/shipments', methods=['POST'])
    @require_auth
    def create_shipment():
        shipment = app.service.create_shipment(_json_body())
        return jsonify({
            "success": True,
            "data": shipment.to_dict(),
            "message": "Shipment created successfully",
        }), 201

    @app.route('/admin/api/shipments/<shipment_id>', methods=['GET'])
    @require_auth
    def get_shipment(shipment_id):
        shipment = app.service.get_shipment(shipment_id)
        return jsonify({"success": True, "data": shipment.to_dict()}), 200

    @app.route('/admin/api/shipments/<shipment_id>', methods=['PUT'])
    @require_auth
    def update_shipment(shipment_id):
        shipment = app.service.update_shipment(shipment_id, _json_body())
        logger.info(f"Shipment {shipment.tracking_id} updated by {g.user['username']}")
        return jsonify({
            "success": True,
            "data": shipment.to_dict(),
            "message": "Shipment updated successfully",
        }), 200

    @app.route('/admin/api/shipments/<shipment_id>/location', methods=['POST'])
    @require_auth
    def update_location(shipment_id):
        data = _json_body()
        shipment = app.service.update_location(
            shipment_id,
            data.get('lat'),
            data.get('lng'),
            data.get('locationName'),
        )
        return jsonify({"success": True, "data": shipment.to_dict()}), 200

    @app.route('/admin/api/shipments/<shipment_id>', methods=['DELETE'])
    @require_auth
    def delete_shipment(shipment_id):
        app.service.delete_shipment(shipment_id)
        return jsonify({"success": True, "message": "Shipment deleted successfully"}), 200

    @app.route('/admin/test-email', methods=['POST'])
    @require_auth
    def test_email():
        """Send a test email through the provider chain."""
        data = _json_body()
        to = data.get('to')
        if not isinstance(to, str) or not to.strip():
            raise ValidationError("Recipient 'to' is required", field="to")

        result = app.notifier.send_test_email(to.strip())
        if not result.ok:
            return jsonify({
                "success": False,
                "message": "Test email failed",
                "error": result.error_reason,
                "attempts": result.attempts,
            }), 502

        return jsonify({
            "success": True,
            "message": "Test email sent successfully",
            "provider": result.provider,
            "data": result.to_dict(),
        }), 200


LOGIN_HTML = '''
<!DOCTYPE html>
<html>
<head>
    <title>Shiptrack Admin Login</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f5f5f5;
            display: flex;
            align-items: center;
            justify-content: center;
            height: 100vh;
            margin: 0;
        }
        form {
            background: white;
            padding: 30px;
            border-radius: 8px;
            box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1);
            width: 300px;
        }
        input, button {
            width: 100%;
            padding: 10px;
            margin-top: 10px;
            box-sizing: border-box;
        }
        button {
            background: #667eea;
            color: white;
            border: none;
            border-radius: 4px;
            cursor: pointer;
        }
        #error { color: #c0392b; margin-top: 10px; }
    </style>
</head>
<body>
    <form id="login-form">
        <h2>Admin Login</h2>
        <input name="username" placeholder="Username" autocomplete="username" required>
        <input name="password" type="password" placeholder="Password" autocomplete="current-password" required>
        <button type="submit">Log in</button>
        <div id="error"></div>
    </form>
    <script>
        document.getElementById('login-form').addEventListener('submit', async (event) => {
            event.preventDefault();
            const form = event.target;
            const response = await fetch('/admin/login', {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                credentials: 'same-origin',
                body: JSON.stringify({
                    username: form.username.value,
                    password: form.password.value
                })
            });
            const body = await response.json();
            if (body.success) {
                window.location = '/admin/dashboard';
            } else {
                document.getElementById('error').textContent = body.message;
            }
        });
    </script>
</body>
</html>
'''
