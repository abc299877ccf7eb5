from typing import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class DashboardCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware for the dashboard API.

    Requests to `public_paths` are passed straight to the app: the ingestion
    endpoint answers its own preflight and sets its own headers, so it stays
    open to every origin whatever `allow_origins` is set to.
    """

    def __init__(self, app: ASGIApp, public_paths: Iterable[str] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.public_paths = frozenset(public_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.public_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
