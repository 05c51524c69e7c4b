# Overview: Flask API routes for cash register sessions; parses input and returns JSON responses.

# backend/armonia/routes/registers.py
"""
Cash Register API Routes

WHY: Cashier accountability. Every route acts on the caller's own register,
identified by the authenticated user id.

DESIGN:
- Lifecycle: open -> close (immutable once closed)
- Manual movements only while the register is open
- History of closed registers is admin-only
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..services import register_service
from ..validation import ConflictError, NotFoundError, ValidationError

registers_bp = Blueprint("registers", __name__, url_prefix="/api/cash-register")


@registers_bp.get("/current")
@require_auth
def current_register_route():
    """Get the caller's open register, or null."""
    register = register_service.get_current_register(g.current_user.id)
    return jsonify({"register": register.to_dict() if register else None}), 200


@registers_bp.post("/open")
@require_auth
def open_register_route():
    """
    Open a register for the caller.

    Request body:
    {
        "opening_balance": 100.00   // cash counted into the drawer
    }

    Returns 409 if the caller already has an open register.
    """
    data = request.get_json(silent=True) or {}

    try:
        register_id = register_service.open_register(
            user_id=g.current_user.id,
            opening_balance=data.get("opening_balance"),
        )
        return jsonify({"message": "Cash register opened", "id": register_id}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to open cash register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/close")
@require_auth
def close_register_route():
    """
    Close the caller's open register.

    Request body:
    {
        "closing_balance": 78.00,    // cash actually counted
        "expected_balance": 80.00    // cash the ledger says should be there
    }

    difference = closing_balance - expected_balance
    """
    data = request.get_json(silent=True) or {}

    if data.get("closing_balance") is None or data.get("expected_balance") is None:
        return jsonify({"error": "closing_balance and expected_balance required"}), 400

    try:
        register = register_service.close_register(
            user_id=g.current_user.id,
            closing_balance=data.get("closing_balance"),
            expected_balance=data.get("expected_balance"),
        )
        result = register.to_dict()
        return jsonify({
            "message": "Cash register closed",
            "register": result,
            "is_exact": register_service.is_exact_balance(register.difference),
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to close cash register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/movements")
@require_auth
def list_movements_route():
    """Movements of the caller's open register, newest first."""
    movements = register_service.get_movements(g.current_user.id)
    return jsonify([m.to_dict() for m in movements]), 200


@registers_bp.post("/movements")
@require_auth
def add_movement_route():
    """
    Record a manual cash movement.

    Request body:
    {
        "type": "OUTFLOW",        // INFLOW | OUTFLOW
        "amount": 20.00,
        "concept": "petty cash"
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        movement_id = register_service.add_movement(
            user_id=g.current_user.id,
            movement_type=data.get("type"),
            amount=data.get("amount"),
            concept=data.get("concept"),
        )
        return jsonify({"message": "Movement recorded", "id": movement_id}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/summary")
@require_auth
def register_summary_route():
    """Open register plus movement count and ledger-derived expected balance."""
    summary = register_service.get_register_summary(g.current_user.id)
    if summary is None:
        return jsonify({"error": "You do not have an open cash register"}), 404
    return jsonify(summary), 200


@registers_bp.get("/history")
@require_auth
@require_role("admin")
def register_history_route():
    """Closed registers, most recently closed first, with opener/closer names."""
    return jsonify(register_service.get_history()), 200
