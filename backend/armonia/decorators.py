# Overview: Request authentication and role decorators for API routes.

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request


@dataclass(frozen=True)
class CurrentUser:
    """Claims carried by a verified bearer token."""
    id: str
    email: str | None
    role: str | None
    name: str | None


def decode_token(token: str, *, secret: str, algorithm: str = "HS256") -> CurrentUser:
    """
    Verify a bearer token and return its user claims.

    Raises jwt.InvalidTokenError (including ExpiredSignatureError) when the
    token cannot be trusted or carries no user id.
    """
    payload = jwt.decode(token, secret, algorithms=[algorithm])
    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise jwt.InvalidTokenError("token has no user id")
    return CurrentUser(
        id=str(user_id),
        email=payload.get("email"),
        role=payload.get("role"),
        name=payload.get("name"),
    )


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the verified CurrentUser.

    Returns 401 when no token is sent and 403 when the token is invalid or
    expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            g.current_user = decode_token(
                token,
                secret=current_app.config["JWT_SECRET"],
                algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
            )
        except jwt.InvalidTokenError:
            return jsonify({"error": "Invalid or expired token"}), 403

        return f(*args, **kwargs)

    return decorated_function


def require_role(*allowed_roles: str):
    """Restrict a route to users whose token role is one of allowed_roles. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in allowed_roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(allowed_roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
