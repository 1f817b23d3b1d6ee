class StringManagerError(Exception):
    """Базовое исключение приложения"""


class AccessDeniedError(StringManagerError, PermissionError):
    """Роль пользователя ниже требуемой для операции"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidInputError(StringManagerError, ValueError):
    """Отсутствует или некорректно обязательное поле"""


class StorageError(StringManagerError):
    """Ошибка хранилища; детали бэкенда наружу не передаются"""


class StorageQuotaError(StorageError):
    """Превышен лимит локального хранилища снимков"""
