from fastapi import Request
import logging
import time

logger = logging.getLogger(__name__)

# Chemins sans intérêt pour le journal des requêtes
IGNORED_PATHS = ("/docs", "/redoc", "/openapi.json", "/favicon.ico")


class RequestLoggingMiddleware:
    """
    Middleware ASGI qui journalise chaque requête API avec son statut et sa durée
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        start_time = time.time()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._log_request(request, status_code, time.time() - start_time)

    def _log_request(self, request: Request, status_code: int, process_time: float):
        path = request.url.path
        if any(path.startswith(ignored) for ignored in IGNORED_PATHS):
            return

        message = f"{request.method} {path} -> {status_code} ({round(process_time * 1000, 2)} ms)"
        if status_code >= 500:
            logger.error(message)
        elif status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
