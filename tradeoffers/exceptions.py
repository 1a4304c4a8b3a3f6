from typing import Optional


class TradeOffersError(Exception):
    """Базовое исключение клиента трейд-офферов"""
    pass


class TransportError(TradeOffersError):
    """Сетевая ошибка транспорта, исходное исключение в original"""

    def __init__(self, original: Exception):
        super().__init__(str(original))
        self.original = original


class HttpStatusError(TradeOffersError):
    """Ответ с кодом не из диапазона 2xx"""

    def __init__(self, status_code: int, context: str = ""):
        message = f"HTTP {status_code}"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)
        self.status_code = status_code


class ApplicationError(TradeOffersError):
    """Steam вернул явную ошибку в теле успешного ответа"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidResponseError(TradeOffersError):
    """В ответе нет обязательных полей"""
    pass


class ReceiptFormatError(InvalidResponseError):
    """Фрагмент скрипта квитанции не распознан"""
    pass


class SessionError(TradeOffersError):
    """На HTML-странице нет ожидаемых данных (сессия, зритель, ссылка)"""
    pass


class IdentityError(TradeOffersError):
    """Некорректный или отсутствующий идентификатор аккаунта"""
    pass


class TradeOfferError(TradeOffersError):
    """Ошибка при работе с трейд-офферами"""
    pass
