"""
Ordered per-request transforms applied through httpx's auth hook.

Each step is either a transform that returns a *new* request, or an
observer that returns the request it was given. Steps are synchronous.
"""
from typing import Callable, Generator, List, NamedTuple, Optional

import httpx

from common_py.logging_config import ContextLogger, configure_logging, redact_headers
from .oauth1_signer import OAuth1Credentials, sign_request

logger = configure_logging("catalog-query:request_pipeline")

StepFn = Callable[[httpx.Request], httpx.Request]


class PipelineStep(NamedTuple):
    name: str
    apply: StepFn


def rebuild_request(
    request: httpx.Request,
    url: Optional[httpx.URL] = None,
    headers: Optional[httpx.Headers] = None,
) -> httpx.Request:
    """Copy of `request` with a different URL and/or headers."""
    new_headers = httpx.Headers(headers if headers is not None else request.headers)
    if url is not None:
        # Let httpx derive Host from the new URL
        new_headers.pop("host", None)
    return httpx.Request(
        request.method,
        url if url is not None else request.url,
        headers=new_headers,
        content=request.content,
        extensions=request.extensions,
    )


class RequestPipeline(httpx.Auth):
    """Runs its steps in order, once per outgoing request."""

    requires_request_body = True

    def __init__(self, steps: List[PipelineStep]):
        self.steps = list(steps)

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]

    def apply(self, request: httpx.Request) -> httpx.Request:
        for step in self.steps:
            request = step.apply(request)
        return request

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        yield self.apply(request)


def bearer_auth_step(token_store) -> PipelineStep:
    """Attach the token held by `token_store` at send time, not at build time."""

    def apply(request: httpx.Request) -> httpx.Request:
        token = token_store.current_token()
        if not token:
            logger.warning("No bearer token available, sending unauthenticated", url=str(request.url))
            return request
        headers = request.headers.copy()
        headers["Authorization"] = f"Bearer {token}"
        return rebuild_request(request, headers=headers)

    return PipelineStep("bearer_auth", apply)


def oauth1_step(credentials: OAuth1Credentials) -> PipelineStep:
    """Sign the request's final method and URL."""

    def apply(request: httpx.Request) -> httpx.Request:
        headers = request.headers.copy()
        headers["Authorization"] = sign_request(request.method, str(request.url), credentials)
        return rebuild_request(request, headers=headers)

    return PipelineStep("oauth1", apply)


def logging_step(step_logger: Optional[ContextLogger] = None) -> PipelineStep:
    log = step_logger or logger

    def apply(request: httpx.Request) -> httpx.Request:
        log.debug(
            "HTTP request",
            method=request.method,
            url=str(request.url),
            headers=redact_headers(request.headers),
        )
        return request

    return PipelineStep("logging", apply)


def base_url_rewrite_step(canonical_host: str, base_url_provider: Callable[[], str]) -> PipelineStep:
    """Point requests addressed to `canonical_host` at the current base URL.

    Only scheme, host and port change; path and query are kept.
    """

    def apply(request: httpx.Request) -> httpx.Request:
        if canonical_host not in request.url.host:
            return request
        base = httpx.URL(base_url_provider())
        if (base.scheme, base.host, base.port) == (request.url.scheme, request.url.host, request.url.port):
            return request
        url = request.url.copy_with(scheme=base.scheme, host=base.host, port=base.port)
        return rebuild_request(request, url=url)

    return PipelineStep("base_url_rewrite", apply)
