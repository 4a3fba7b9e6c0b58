from __future__ import annotations

from src.app.domain.errors import (
    BalanceNotFoundError,
    ImportNotFoundError,
    InsufficientBalanceError,
    InvalidInputError,
    InvalidReceiptError,
    PersistenceError,
    RecipeImportError,
    RepositoryError,
    StorageError,
    TokenDebitError,
    UnauthenticatedError,
    UnknownProductError,
)


class TestRecipeImportError:
    def test_base_exception(self) -> None:
        error = RecipeImportError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)
        assert error.code == "internal_error"


class TestUnauthenticatedError:
    def test_default_message(self) -> None:
        error = UnauthenticatedError()
        assert "bearer token" in str(error)
        assert error.code == "unauthenticated"

    def test_custom_message(self) -> None:
        error = UnauthenticatedError("Token expired")
        assert str(error) == "Token expired"


class TestInsufficientBalanceError:
    def test_carries_required_and_available(self) -> None:
        error = InsufficientBalanceError(required=3, available=1)
        assert error.required == 3
        assert error.available == 1
        assert "3 required" in str(error)
        assert error.code == "insufficient_balance"


class TestUnknownProductError:
    def test_includes_product_id(self) -> None:
        error = UnknownProductError("tokens_999")
        assert "tokens_999" in str(error)
        assert error.product_id == "tokens_999"
        assert error.code == "unknown_product"


class TestBalanceNotFoundError:
    def test_includes_user_id(self) -> None:
        error = BalanceNotFoundError("user-1")
        assert "user-1" in str(error)
        assert error.user_id == "user-1"


class TestImportNotFoundError:
    def test_includes_import_id(self) -> None:
        error = ImportNotFoundError("abc-123")
        assert "abc-123" in str(error)
        assert error.import_id == "abc-123"
        assert error.code == "not_found"


class TestRepositoryError:
    def test_includes_operation_and_reason(self) -> None:
        error = RepositoryError("debit", "connection reset")
        assert "debit" in str(error)
        assert "connection reset" in str(error)
        assert error.operation == "debit"
        assert error.reason == "connection reset"


class TestErrorCodes:
    def test_response_codes(self) -> None:
        assert InvalidInputError("x").code == "invalid_input"
        assert PersistenceError("x").code == "persistence_failed"
        assert TokenDebitError("x").code == "token_debit_failed"
        assert InvalidReceiptError("x").code == "invalid_receipt"

    def test_all_errors_inherit_from_base(self) -> None:
        errors = [
            UnauthenticatedError(),
            InvalidInputError("x"),
            InsufficientBalanceError(1, 0),
            PersistenceError("x"),
            TokenDebitError("x"),
            UnknownProductError("p"),
            InvalidReceiptError("x"),
            BalanceNotFoundError("u"),
            ImportNotFoundError("i"),
            RepositoryError("op", "r"),
            StorageError("x"),
        ]
        for error in errors:
            assert isinstance(error, RecipeImportError)
