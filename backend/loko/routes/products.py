# Overview: Flask API routes for the seller catalogue; parses input and returns JSON responses.

"""
Product catalogue routes

- GET    /api/products        - Storefront: active, in-stock products with seller name
- GET    /api/products/mine   - The calling seller's own catalogue (inactive included)
- POST   /api/products        - Create a product (seller; admins pass seller_id)
- PUT    /api/products/:id    - Partial update (owning seller or admin)
- DELETE /api/products/:id    - Withdraw from sale (soft delete)

SECURITY: All routes require authentication.
- Reading the storefront is open to every role
- Write operations require MANAGE_PRODUCTS permission, plus ownership
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, domain_error_response, error_response
from ..services import products_service
from ..services.delivery_service import InternalError
from ..services.permission_service import UnauthorizedError
from ..validation import NotFoundError, ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

DOMAIN_ERRORS = (ValidationError, UnauthorizedError, NotFoundError, InternalError)


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - seller_id: str (optional) - only this seller's products
    """
    try:
        seller_id = (request.args.get("seller_id") or "").strip() or None
        products = products_service.list_public_products(seller_id)
        return jsonify({"success": True, "products": products, "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@products_bp.get("/mine")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def list_own_products_route():
    try:
        products = products_service.list_seller_products(g.actor.user_id)
        return jsonify({"success": True, "products": products, "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list seller products")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Request body:
        {
            "name": "Attieke 1kg",       // required, at least 2 characters
            "description": "...",        // optional
            "price_cents": 1500,         // integer >= 0, default 0
            "stock": 20,                 // integer >= 0, default 0
            "image": "https://...",      // optional
            "seller_id": "..."           // admins only
        }
    """
    try:
        product = products_service.create_product(g.actor, request.get_json(silent=True))
        return jsonify({"success": True, "product": product.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@products_bp.route("/<product_id>", methods=["PUT", "PATCH"])
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: str):
    """Only the fields present in the body change; is_active may be set back to true."""
    try:
        product = products_service.update_product(g.actor, product_id, request.get_json(silent=True))
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@products_bp.delete("/<product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: str):
    try:
        product = products_service.delete_product(g.actor, product_id)
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
