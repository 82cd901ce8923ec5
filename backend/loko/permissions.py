"""
Role and Permission Definitions for the delivery marketplace

WHY: Centralized permission definitions ensure consistency across the application.
All permission codes and role mappings defined here.

DESIGN PRINCIPLES:
- Four fixed roles: client, courier, seller, admin
- Permissions are granular (one action per permission)
- Ownership rules (own delivery, assigned courier) are checked by the
  delivery service on top of these role grants
- Admin has all permissions by default
"""

# =============================================================================
# ROLES
# =============================================================================

ROLE_CLIENT = "client"
ROLE_COURIER = "courier"
ROLE_SELLER = "seller"
ROLE_ADMIN = "admin"

VALID_ROLES = {ROLE_CLIENT, ROLE_COURIER, ROLE_SELLER, ROLE_ADMIN}

# Roles a user may pick when self-registering; admins are created via CLI
SELF_REGISTER_ROLES = {ROLE_CLIENT, ROLE_COURIER, ROLE_SELLER}


# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    DELIVERIES = "DELIVERIES"
    POINTS = "POINTS"
    NOTIFICATIONS = "NOTIFICATIONS"
    PRODUCTS = "PRODUCTS"
    USERS = "USERS"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    (
        "CREATE_DELIVERY",
        "Create Delivery",
        "Place an order and create its delivery",
        PermissionCategory.DELIVERIES
    ),
    (
        "VIEW_DELIVERY",
        "View Delivery",
        "List deliveries and read delivery details",
        PermissionCategory.DELIVERIES
    ),
    (
        "CANCEL_DELIVERY",
        "Cancel Delivery",
        "Cancel a delivery that has not been assigned yet",
        PermissionCategory.DELIVERIES
    ),
    (
        "ASSIGN_DELIVERY",
        "Assign Delivery",
        "Assign a courier to a delivery (self-acceptance for couriers)",
        PermissionCategory.DELIVERIES
    ),
    (
        "UPDATE_DELIVERY_STATUS",
        "Update Delivery Status",
        "Advance a delivery along its lifecycle",
        PermissionCategory.DELIVERIES
    ),
    (
        "COMPLETE_DELIVERY",
        "Complete Delivery",
        "Submit proof of delivery (GPS + confirmation code)",
        PermissionCategory.DELIVERIES
    ),
    (
        "CREATE_DELIVERY_POINT",
        "Create Delivery Point",
        "Create pickup and drop-off locations",
        PermissionCategory.POINTS
    ),
    (
        "VIEW_NOTIFICATIONS",
        "View Notifications",
        "Read and manage own notifications",
        PermissionCategory.NOTIFICATIONS
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and withdraw own catalogue products",
        PermissionCategory.PRODUCTS
    ),
    (
        "VIEW_COURIERS",
        "View Couriers",
        "List courier accounts and their contact details",
        PermissionCategory.USERS
    ),
]


# =============================================================================
# DEFAULT ROLE PERMISSION MAPPINGS
# =============================================================================

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: [perm[0] for perm in PERMISSION_DEFINITIONS],

    ROLE_CLIENT: [
        "CREATE_DELIVERY",
        "VIEW_DELIVERY",
        "CANCEL_DELIVERY",
        "CREATE_DELIVERY_POINT",
        "VIEW_NOTIFICATIONS",
    ],

    ROLE_COURIER: [
        "VIEW_DELIVERY",
        "ASSIGN_DELIVERY",  # self-acceptance only
        "UPDATE_DELIVERY_STATUS",
        "COMPLETE_DELIVERY",
        "VIEW_NOTIFICATIONS",
    ],

    ROLE_SELLER: [
        "VIEW_DELIVERY",
        "ASSIGN_DELIVERY",  # own orders only
        "VIEW_NOTIFICATIONS",
        "MANAGE_PRODUCTS",
        "VIEW_COURIERS",
    ],
}


# =============================================================================
# PERMISSION HELPERS
# =============================================================================

def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role):
    """Permission codes granted to a role (empty for unknown roles)."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, []))


def validate_role(role):
    """Check if a role name is valid."""
    return role in VALID_ROLES
