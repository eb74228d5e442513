from __future__ import annotations


class DynamapperError(Exception):
    pass


class ValidationError(DynamapperError):
    pass


class NotFoundError(DynamapperError):
    pass


class MissingTableNameError(ValidationError):
    def __init__(self, model_name: str) -> None:
        super().__init__(f"{model_name}: no base table configured")
        self.model_name = model_name


class ReadOnlyIndexEntityError(ValidationError):
    def __init__(self, model_name: str, index_name: str) -> None:
        super().__init__(f"{model_name}: items from index {index_name} are read-only")
        self.model_name = model_name
        self.index_name = index_name


class MissingPartitionKeyError(ValidationError):
    pass


class MissingPartitionKeyValueError(MissingPartitionKeyError):
    pass


class MissingSortKeyError(ValidationError):
    pass


class SortKeyRequiredError(MissingSortKeyError):
    pass


class UnsupportedKeyTypeError(ValidationError):
    pass
