"""Declarative models for the contracts SimpleQL checks at boot."""

DB_COLUMN = {
    "type": "string",
    "length": "integer",
    "scale": "integer",
    "unsigned": "boolean",
    "notNull": "boolean",
    "autoIncrement": "boolean",
    "defaultValue": "*",
    "required": ["type"],
    "strict": True,
}

INDEX = {
    "column": "*",
    "type": "string",
    "length": "integer",
    "required": ["column"],
    "strict": True,
}

LOGIN_OPTIONS = {
    "login": "string",
    "password": "string",
    "salt": "string",
    "userTable": "string",
    "required": ["login", "password", "userTable"],
    "strict": True,
}
