"""
Доменные исключения бота конкурсов.
"""


class RafError(Exception):
    """Базовое исключение для всех ошибок конкурсов"""
    pass


class ValidationError(RafError):
    """Некорректные данные конкурса, присланные пользователем"""
    pass


class AlreadyStarted(RafError):
    """Конкурс уже запущен"""

    def __init__(self, contest_id: int):
        super().__init__(f"contest {contest_id} is already started")
        self.contest_id = contest_id


class AlreadyStopped(RafError):
    """Конкурс уже остановлен"""

    def __init__(self, contest_id: int):
        super().__init__(f"contest {contest_id} is already stopped")
        self.contest_id = contest_id


class ConstraintError(RafError):
    """Нарушение ограничения целостности в хранилище (уникальность, внешний ключ)"""
    pass


class DuplicateInvitation(ConstraintError):
    """Приглашение для пары (source, dest) в этом канале уже засчитано"""
    pass


class SelfInvitation(ConstraintError):
    """Пользователь пытается пригласить сам себя"""
    pass


class DecodeError(RafError):
    """Некорректный реферальный токен"""
    pass


class NotFound(RafError):
    """Запрошенный конкурс, канал или пользователь не существует"""
    pass


class ExternalError(RafError):
    """Ошибка Telegram API при обращении к внешней системе"""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
