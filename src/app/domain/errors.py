from __future__ import annotations


class RecipeImportError(Exception):
    code = "internal_error"


class UnauthenticatedError(RecipeImportError):
    code = "unauthenticated"

    def __init__(self, message: str = "Missing or invalid bearer token"):
        super().__init__(message)


class InvalidInputError(RecipeImportError):
    code = "invalid_input"


class InsufficientBalanceError(RecipeImportError):
    code = "insufficient_balance"

    def __init__(self, required: int, available: int):
        super().__init__(f"Insufficient tokens: {required} required, {available} available")
        self.required = required
        self.available = available


class PersistenceError(RecipeImportError):
    code = "persistence_failed"


class TokenDebitError(RecipeImportError):
    code = "token_debit_failed"


class UnknownProductError(RecipeImportError):
    code = "unknown_product"

    def __init__(self, product_id: str):
        super().__init__(f"Invalid product ID: {product_id}")
        self.product_id = product_id


class InvalidReceiptError(RecipeImportError):
    code = "invalid_receipt"


class BalanceNotFoundError(RecipeImportError):
    def __init__(self, user_id: str):
        super().__init__(f"No token balance found for user {user_id}")
        self.user_id = user_id


class ImportNotFoundError(RecipeImportError):
    code = "not_found"

    def __init__(self, import_id: str):
        super().__init__(f"Import not found: {import_id}")
        self.import_id = import_id


class RepositoryError(RecipeImportError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class StorageError(RecipeImportError):
    pass
