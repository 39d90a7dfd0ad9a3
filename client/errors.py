class ClientError(Exception):
    status_code: int | None = None


class IneligibleError(ClientError):
    def __init__(self, message: str, *, reason: str = "cooldown", days_remaining: int = 0) -> None:
        super().__init__(message)
        self.reason = reason
        self.days_remaining = days_remaining


class NoPrizeAvailableError(ClientError):
    pass


class DrawTransactionError(ClientError):
    """The draw request failed or its outcome is unknown.

    Whether a spin was recorded can only be learned by checking eligibility
    again; the request itself must not be blindly retried.
    """


class AlignmentError(ClientError):
    """The server's winning prize is not on the rendered wheel or reels."""


class DrawInProgressError(ClientError):
    pass


class PrizeUnavailableError(ClientError):
    pass


def error_from_payload(data: dict, status_code: int) -> ClientError:
    error = _error_for(data, status_code)
    error.status_code = status_code
    return error


def _error_for(data: dict, status_code: int) -> ClientError:
    code = data.get("error")
    message = data.get("message") or data.get("detail") or f"Request failed ({status_code})"
    if code == "ineligible":
        return IneligibleError(
            message,
            reason=data.get("reason", "cooldown"),
            days_remaining=int(data.get("days_remaining") or 0),
        )
    if code == "no_prize_available":
        return NoPrizeAvailableError(message)
    return DrawTransactionError(str(message))
