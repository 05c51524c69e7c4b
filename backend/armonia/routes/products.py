# Overview: Flask API routes for products and stock; parses input and returns JSON responses.

# backend/armonia/routes/products.py
"""
Product and stock routes.

SECURITY: All routes require authentication.
- Catalog writes (create/update/delete) require the admin role
- Stock adjustments are open to any authenticated user (sales, receiving)

Size-tracked products never accept a simple stock delta; their stock moves
through /stock/size, which recomputes the product total.
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..services import inventory_service
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    validate_product_data,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """List all products (newest first) with their sizes."""
    products = inventory_service.list_products()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    product = inventory_service.get_product_with_sizes(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.get("/barcode/<barcode>")
@require_auth
def get_product_by_barcode_route(barcode: str):
    """Barcode scanner lookup used at the point of sale."""
    product = inventory_service.get_product_by_barcode(barcode)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_role("admin")
def create_product_route():
    """
    Create a product.

    Request body:
    {
        "name": "Linen shirt",
        "sku": "SH-001",
        "price": 29.90,
        "cost": 12.00,                  (optional)
        "category": "shirts",
        "product_type": "apparel",      // apparel | other
        "barcode": "7501234567890",     (optional)
        "min_stock": 2,                 (optional)
        "stock": 0,                     // ignored when has_sizes
        "has_sizes": true,
        "size_type": "letter",          // letter | number
        "sizes": [{"size": "S", "quantity": 3}, {"size": "M", "quantity": 5}]
    }
    """
    payload = request.get_json(silent=True) or {}

    validation = validate_product_data(payload)
    if not validation.is_valid:
        return jsonify({"error": validation.error}), 400

    try:
        product_id = inventory_service.create_product(payload)
        return jsonify({"message": "Product created", "id": product_id}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<product_id>")
@require_auth
@require_role("admin")
def update_product_route(product_id: str):
    """
    Replace a product, including its full size list.

    Sizes are not merged: any size missing from the body is removed.
    """
    payload = request.get_json(silent=True) or {}

    validation = validate_product_data(payload)
    if not validation.is_valid:
        return jsonify({"error": validation.error}), 400

    try:
        inventory_service.update_product(product_id, payload)
        return jsonify({"message": "Product updated"}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_auth
@require_role("admin")
def delete_product_route(product_id: str):
    """Delete a product; its sizes go with it."""
    try:
        deleted = inventory_service.delete_product(product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"message": "Product deleted"}), 200


@products_bp.patch("/<product_id>/stock")
@require_auth
def update_stock_route(product_id: str):
    """
    Adjust stock of a product without sizes.

    Request body:
    {
        "quantity": -2   // negative for sales, positive for receiving
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        stock = inventory_service.update_stock_simple(product_id, data.get("quantity"))
        return jsonify({"message": "Stock updated", "stock": stock}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<product_id>/stock/size")
@require_auth
def update_stock_by_size_route(product_id: str):
    """
    Adjust one size of a size-tracked product and recompute its total.

    Request body:
    {
        "size": "M",
        "quantity": -1
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        stock = inventory_service.update_stock_by_size(product_id, data.get("size"), data.get("quantity"))
        return jsonify({"message": "Stock updated", "stock": stock}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update stock by size")
        return jsonify({"error": "Internal server error"}), 500
