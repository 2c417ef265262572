"""JSON snippets to be included in the OpenAPI specification file."""

TID = {
    "in": "path",
    "name": "transferId",
    "required": True,
    "description": "The transfer's ID",
    "schema": {
        "type": "integer",
        "format": "int32",
        "minimum": 1,
    },
}

ERROR_CONTENT = {
    "application/json": {
        "schema": {
            "type": "object",
            "properties": {
                "code": {
                    "type": "integer",
                    "format": "int32",
                    "description": "Error code",
                },
                "errors": {
                    "type": "object",
                    "description": "Errors",
                },
                "status": {
                    "type": "string",
                    "description": "Error name",
                },
                "message": {
                    "type": "string",
                    "description": "Error message",
                },
            },
        }
    }
}

TRANSFER_DOES_NOT_EXIST = {
    "description": "The transfer does not exist.",
    "content": ERROR_CONTENT,
}

DATABASE_UNREACHABLE = {
    "description": "The database is unreachable.",
    "content": ERROR_CONTENT,
}

TRANSFER_CAN_NOT_BE_RETRIED = {
    "description": "The transfer is not in a state that allows retrying.",
    "content": ERROR_CONTENT,
}

SCOPE_ACCESS_READONLY = [
    {"oauth2": ["access.readonly"]},
]

SCOPE_ACCESS_MODIFY = [
    {"oauth2": ["access"]},
]

API_DESCRIPTION = """Admin API for the accreditation platform's payouts
to ACCs, training centers and instructors.
"""

API_SPEC_OPTIONS = {
    "info": {
        "description": API_DESCRIPTION,
    },
    "servers": [
        {"url": "$API_ROOT"},
        {"url": "/"},
    ],
    "components": {
        "securitySchemes": {
            "oauth2": {
                "type": "oauth2",
                "description": (
                    "This API uses OAuth 2. [More info](https://oauth.net/2/)."
                ),
                "flows": {
                    "clientCredentials": {
                        "tokenUrl": "$OAUTH2_TOKEN_URL",
                        "refreshUrl": "$OAUTH2_REFRESH_URL",
                        "scopes": {
                            "access.readonly": "read-only access",
                            "access": "read-write access",
                        },
                    },
                },
            },
        },
    },
}
