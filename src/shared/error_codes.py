# src/shared/error_codes.py
# Central mapping that aligns with the error contract.
# Keep keys stable: clients branch on these.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 422,
        "message": "Validation failed for one or more fields."
    },

    # ─── Authentication & Authorization ────────────────────────────────────
    "unauthorized": {
        "http": 401,
        "message": "Authentication required."
    },
    "invalid_credentials": {
        "http": 401,
        "message": "Invalid email or password."
    },
    "account_locked": {
        "http": 403,
        "message": "Account is temporarily locked."
    },
    "forbidden": {
        "http": 403,
        "message": "You do not have permission to perform this action."
    },
    "two_factor_required": {
        "http": 401,
        "message": "A second authentication factor is required."
    },
    "invalid_two_factor_code": {
        "http": 401,
        "message": "Invalid verification code."
    },

    # ─── Profile resolution ────────────────────────────────────────────────
    "profile_not_found": {
        "http": 404,
        "message": "Profile not found."
    },
    "profile_unavailable": {
        "http": 503,
        "message": "Your account setup is still in progress."
    },

    # ─── Invitations ───────────────────────────────────────────────────────
    "invitation_invalid": {
        "http": 404,
        "message": "Invalid invitation code."
    },
    "invitation_expired": {
        "http": 400,
        "message": "Invitation has expired."
    },
    "invitation_already_used": {
        "http": 409,
        "message": "Invitation has already been used."
    },
    "invitation_email_mismatch": {
        "http": 403,
        "message": "This invitation was sent to a different email address."
    },

    # ─── Resources ─────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },
    "conflict": {
        "http": 409,
        "message": "Resource conflict."
    },

    # ─── Upstream / Server ─────────────────────────────────────────────────
    "backend_unavailable": {
        "http": 503,
        "message": "The backing service is unavailable."
    },
    "identity_provider_error": {
        "http": 502,
        "message": "The identity provider returned an unexpected response."
    },
    "internal_error": {
        "http": 500,
        "message": "Internal server error."
    },
}
