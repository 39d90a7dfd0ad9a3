class ServiceError(Exception):
    pass


class PrizeNotFound(ServiceError):
    pass


class InventoryError(ServiceError):
    pass


class DrawError(ServiceError):
    code = "draw_failed"
    http_status = 500

    def payload(self) -> dict:
        return {"error": self.code, "message": str(self)}


class IneligibleError(DrawError):
    code = "ineligible"
    http_status = 409

    def __init__(self, message: str, *, reason: str, days_remaining: int = 0) -> None:
        super().__init__(message)
        self.reason = reason
        self.days_remaining = days_remaining

    def payload(self) -> dict:
        data = super().payload()
        data["reason"] = self.reason
        data["days_remaining"] = self.days_remaining
        return data


class NoPrizeAvailableError(DrawError):
    code = "no_prize_available"
    http_status = 409


class DrawTransactionError(DrawError):
    code = "draw_transaction_failed"
    http_status = 503
