from typing import Protocol


class NotifierPort(Protocol):
    def send_otp(self, *, email: str, code: str, expiry_minutes: int) -> None: ...

    def notify_admin(self, *, subject: str, body: str) -> None: ...
