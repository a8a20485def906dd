from typing import MutableMapping, Optional

MESSAGE_KEY = "message"
USERNAME_KEY = "username"


class SessionState:
    """Per-request view over the cookie session.

    Holds the signed-in username and a one-shot flash message. Reading the
    message with `take_message` removes it, so it shows up on exactly one
    rendered page.
    """

    def __init__(self, session: MutableMapping):
        self._session = session

    def set_message(self, text: str) -> None:
        self._session[MESSAGE_KEY] = text

    def take_message(self) -> Optional[str]:
        return self._session.pop(MESSAGE_KEY, None)

    def sign_in(self, username: str) -> None:
        self._session[USERNAME_KEY] = username

    def sign_out(self) -> None:
        self._session.pop(USERNAME_KEY, None)

    @property
    def current_user(self) -> Optional[str]:
        return self._session.get(USERNAME_KEY)

    @property
    def signed_in(self) -> bool:
        return self.current_user is not None
