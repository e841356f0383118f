from dataclasses import dataclass

from jsonnet_bundler.domain.json_types import JsonDict


@dataclass(eq=False)
class AdapterError(Exception):
    message: str
    details: JsonDict | None = None
    hint: str | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


class FetchError(AdapterError):
    pass


class RefNotFoundError(FetchError):
    pass


class AuthenticationError(FetchError):
    pass


class NetworkError(FetchError):
    pass


class WorkspaceTransactionError(AdapterError):
    pass


class WorkspaceCommitError(AdapterError):
    pass


class CommandNotFound(AdapterError):
    pass


class CommandFailed(AdapterError):
    pass
