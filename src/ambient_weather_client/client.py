# ambient_weather_client/client.py
"""
Resilient async HTTP client for the Ambient Weather REST API.

This client executes RequestSpec objects without knowing how they were
built. Endpoint-specific logic (paths, camelCase query names, epoch
millisecond dates, key injection) lives in the EndpointDefinition.

Policy Chain:
-------------
Every call runs through the following policies, outermost first:

1. Transient retry: 5xx, 408, timeouts and connection errors are retried
   up to `transient_retries` times with decorrelated jitter backoff.
2. Too-many-requests retry: HTTP 429 is retried up to
   `too_many_requests_retries` times with the same backoff shape and an
   independent budget.
3. Unauthorized breaker: a single HTTP 401 opens a dedicated circuit.
   Invalid keys do not fix themselves, so further calls fail fast.
4. Transient breaker: `circuit_breaker_failure_threshold` consecutive
   transient failures open a second, independent circuit.
5. Interval rate limiter: at most one request per
   `rate_limit_interval_seconds`. It sits innermost so that every retry
   attempt is spaced too.

Open circuits are never retried. Other 4xx responses fail immediately.

Results:
--------
`get()` never raises for HTTP failures: it returns a ServiceResponse that
is Ok with the body text, or Fail with a message. asyncio cancellation is
not a failure and always propagates as CancelledError.

SSL/TLS Handling:
-----------------
- Standard verification (verify_ssl=True)
- Disabled verification (verify_ssl=False) for development
- Custom CA bundle (verify_ssl='/path/to/cert.pem') for Zscaler environments
- Truststore integration (use_truststore=True) for the OS certificate store
"""

import logging
import ssl
from ssl import SSLContext
from types import TracebackType
from typing import Final, Self

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from ambient_weather_client.common import build_truststore_ssl_context
from ambient_weather_client.config import ResilienceConfig
from ambient_weather_client.models import (
    AmbientCredentials,
    RequestSpec,
    ServiceResponse,
)
from ambient_weather_client.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    IntervalRateLimiter,
    decorrelated_jitter_backoff,
    wait_from_schedule,
)

__all__: list[str] = [
    'APIError',
    'CircuitOpenError',
    'RateLimitError',
    'ResilientClient',
    'TransientAPIError',
    'UnauthorizedError',
]

logger: logging.Logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_STATUS_UNAUTHORIZED: Final[int] = 401
HTTP_STATUS_REQUEST_TIMEOUT: Final[int] = 408
HTTP_STATUS_RATE_LIMITED: Final[int] = 429
HTTP_STATUS_SERVER_ERROR_MIN: Final[int] = 500
HTTP_STATUS_SERVER_ERROR_MAX: Final[int] = 599

# Longest response body excerpt carried into failure messages
ERROR_BODY_SNIPPET_LENGTH: Final[int] = 200


# =============================================================================
# Exception Hierarchy
# =============================================================================


class APIError(Exception):
    """
    Base exception for API errors raised inside the policy chain.

    ResilientClient.get() converts these into failed ServiceResponses, so
    callers of the client only see them when using the policies directly.

    Attributes:
        status_code: HTTP status code if available, None for connection errors.
        response_body: Raw response body for debugging, None if unavailable.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
        self.response_body: str | None = response_body


class TransientAPIError(APIError):
    """
    Raised for transient errors that should be retried.

    This includes timeouts, connection errors, HTTP 408 and server errors (5xx).
    """

    pass


class RateLimitError(APIError):
    """
    Raised when the vendor rate limit is exceeded (HTTP 429).

    Not a TransientAPIError: 429 has its own retry budget and does not
    count toward the transient circuit breaker.
    """

    pass


class UnauthorizedError(APIError):
    """Raised on HTTP 401 (invalid API key or application key)."""

    pass


# =============================================================================
# Retry Logging
# =============================================================================


def _log_before_retry(retry_state: RetryCallState) -> None:
    """Log the failed attempt and the upcoming backoff delay."""
    exception: BaseException | None = (
        retry_state.outcome.exception() if retry_state.outcome else None
    )
    sleep_seconds: float = (
        retry_state.next_action.sleep if retry_state.next_action else 0.0
    )
    logger.warning(
        'Attempt %d failed (%s); retrying in %.2fs',
        retry_state.attempt_number,
        exception,
        sleep_seconds,
    )


# =============================================================================
# HTTP Client
# =============================================================================


class ResilientClient:
    """
    Rate-limited, retrying, circuit-breaking client for one credential set.

    Construct one instance per credential set and pass it explicitly to the
    device data and history layers. Breaker and limiter state belong to the
    instance: two clients with the same keys share nothing.

    Concurrency:
        Designed for a single asyncio event loop. Concurrent get() calls are
        safe; the rate limiter serializes them.

    Example:
        >>> async with ResilientClient(credentials) as client:
        ...     spec = AmbientEndpoints.USER_DEVICES.build_request_spec(credentials)
        ...     response = await client.get(spec)
        ...     if response.success:
        ...         print(response.value)
    """

    def __init__(
        self,
        credentials: AmbientCredentials,
        resilience: ResilienceConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        pool_connections: int = 5,
        pool_maxsize: int = 10,
    ) -> None:
        """
        Initialize the resilient client.

        Args:
            credentials: Connection settings (timeout, SSL). The keys are
                carried by each RequestSpec, not read here.
            resilience: Policy numbers. None uses the vendor defaults.
            transport: Optional httpx transport, e.g. httpx.MockTransport.
            pool_connections: Maximum number of keepalive connections.
            pool_maxsize: Maximum total connections allowed in the pool.

        Raises:
            RuntimeError: If use_truststore=True and truststore is missing.
        """
        self._credentials: AmbientCredentials = credentials
        self._resilience: ResilienceConfig = resilience or ResilienceConfig()
        self._closed: bool = False

        self._rate_limiter: IntervalRateLimiter = IntervalRateLimiter(
            self._resilience.rate_limit_interval_seconds
        )
        self._transient_breaker: CircuitBreaker = CircuitBreaker(
            name='transient',
            failure_threshold=self._resilience.circuit_breaker_failure_threshold,
            break_duration_seconds=self._resilience.circuit_breaker_duration_seconds,
            handled_exceptions=(TransientAPIError,),
        )
        self._unauthorized_breaker: CircuitBreaker = CircuitBreaker(
            name='unauthorized',
            failure_threshold=1,
            break_duration_seconds=self._resilience.unauthorized_break_duration_seconds,
            handled_exceptions=(UnauthorizedError,),
        )

        connect_timeout: int
        read_timeout: int
        connect_timeout, read_timeout = credentials.timeout
        default_timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=connect_timeout,
            pool=connect_timeout,
        )

        self._http_client: httpx.AsyncClient = httpx.AsyncClient(
            timeout=default_timeout,
            verify=self._build_ssl_context(),
            limits=httpx.Limits(
                max_keepalive_connections=pool_connections,
                max_connections=pool_maxsize,
            ),
            transport=transport,
        )

        logger.info(
            'Initialized ResilientClient: base_url=%r, rate_limit_interval=%.2fs',
            credentials.base_url,
            self._resilience.rate_limit_interval_seconds,
        )

    def _build_ssl_context(self) -> SSLContext | bool:
        """
        Build SSL verification context from credentials.

        Returns:
            SSLContext for truststore or a CA bundle, bool for enable/disable.
        """
        if self._credentials.use_truststore:
            logger.debug('Building SSLContext from truststore (system CA store)')
            return build_truststore_ssl_context()

        if isinstance(self._credentials.verify_ssl, str):
            logger.debug('Using CA bundle: %s', self._credentials.verify_ssl)
            return ssl.create_default_context(cafile=self._credentials.verify_ssl)

        logger.debug('Using SSL verification setting: %r', self._credentials.verify_ssl)
        return self._credentials.verify_ssl

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def credentials(self) -> AmbientCredentials:
        return self._credentials

    @property
    def resilience(self) -> ResilienceConfig:
        return self._resilience

    @property
    def transient_circuit_state(self) -> CircuitState:
        return self._transient_breaker.state

    @property
    def unauthorized_circuit_state(self) -> CircuitState:
        return self._unauthorized_breaker.state

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Async Context Manager Protocol
    # -------------------------------------------------------------------------

    async def aclose(self) -> None:
        """
        Close the HTTP client and release connection pool resources.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        await self._http_client.aclose()
        logger.debug('ResilientClient closed')

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def get(self, request_spec: RequestSpec) -> ServiceResponse[str]:
        """
        Execute a GET through the full policy chain.

        Args:
            request_spec: Request built by an EndpointDefinition.

        Returns:
            Ok with the response body text on 2xx, Fail with a descriptive
            message otherwise.

        Raises:
            RuntimeError: If the client has been closed.
            asyncio.CancelledError: If the calling task is cancelled.
        """
        if self._closed:
            raise RuntimeError('ResilientClient is closed')

        try:
            body: str = await self._execute_with_transient_retry(request_spec)
        except UnauthorizedError as error:
            logger.error(
                'Unauthorized for %r; check the API key and application key',
                request_spec.resource_path,
            )
            return ServiceResponse.fail(
                f'HTTP {HTTP_STATUS_UNAUTHORIZED}: unauthorized, invalid API key '
                f'or application key ({_snippet(error.response_body)})'
            )
        except CircuitOpenError as error:
            logger.error('Request to %r rejected: %s', request_spec.resource_path, error)
            return ServiceResponse.fail(str(error))
        except APIError as error:
            logger.error(
                'Request to %r failed: %s',
                request_spec.resource_path,
                error,
            )
            return ServiceResponse.fail(_describe_api_error(error))

        return ServiceResponse.ok(body)

    # -------------------------------------------------------------------------
    # Policy Chain
    # -------------------------------------------------------------------------

    async def _execute_with_transient_retry(self, request_spec: RequestSpec) -> str:
        """Policy 1: retry TransientAPIError with decorrelated jitter."""
        retry_count: int = self._resilience.transient_retries
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientAPIError),
            wait=wait_from_schedule(self._backoff_schedule(retry_count)),
            stop=stop_after_attempt(retry_count + 1),
            before_sleep=_log_before_retry,
            reraise=True,
        )
        return await retrying(self._execute_with_rate_limit_retry, request_spec)

    async def _execute_with_rate_limit_retry(self, request_spec: RequestSpec) -> str:
        """Policy 2: retry RateLimitError on its own budget."""
        retry_count: int = self._resilience.too_many_requests_retries
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RateLimitError),
            wait=wait_from_schedule(self._backoff_schedule(retry_count)),
            stop=stop_after_attempt(retry_count + 1),
            before_sleep=_log_before_retry,
            reraise=True,
        )
        return await retrying(self._execute_with_unauthorized_breaker, request_spec)

    async def _execute_with_unauthorized_breaker(self, request_spec: RequestSpec) -> str:
        """Policy 3: fail fast after HTTP 401."""
        return await self._unauthorized_breaker.call(
            self._execute_with_transient_breaker, request_spec
        )

    async def _execute_with_transient_breaker(self, request_spec: RequestSpec) -> str:
        """Policy 4: fail fast after sustained transient failures."""
        return await self._transient_breaker.call(self._execute_attempt, request_spec)

    async def _execute_attempt(self, request_spec: RequestSpec) -> str:
        """Policy 5 plus transport: wait for a slot, send, classify."""
        await self._rate_limiter.acquire()
        response: httpx.Response = await self._send_http_request(request_spec)
        return self._handle_response(response)

    def _backoff_schedule(self, retry_count: int) -> list[float]:
        return decorrelated_jitter_backoff(
            median_first_retry_delay=self._resilience.median_first_retry_delay_seconds,
            retry_count=retry_count,
            max_delay=self._resilience.max_retry_delay_seconds,
        )

    # -------------------------------------------------------------------------
    # HTTP Execution Layer
    # -------------------------------------------------------------------------

    async def _send_http_request(self, request_spec: RequestSpec) -> httpx.Response:
        """
        Send the HTTP request, converting transport errors to TransientAPIError.

        Raises:
            TransientAPIError: On timeout or connection errors (retryable).
        """
        timeout = httpx.Timeout(
            connect=request_spec.timeout[0],
            read=request_spec.timeout[1],
            write=request_spec.timeout[0],
            pool=request_spec.timeout[0],
        )

        logger.debug('%s %s', request_spec.method.value, request_spec.resource_path)

        try:
            return await self._http_client.request(
                method=request_spec.method.value,
                url=request_spec.url,
                params=request_spec.query_params,
                headers=request_spec.headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as error:
            logger.warning('Request timeout: %s', request_spec.resource_path)
            raise TransientAPIError(f'Request timeout: {error}') from error
        except httpx.RequestError as error:
            # The error text may embed the URL with keys, so only the type is logged
            logger.warning(
                'Connection error: %s - %s',
                request_spec.resource_path,
                type(error).__name__,
            )
            raise TransientAPIError(
                f'Connection error: {type(error).__name__}'
            ) from error

    def _handle_response(self, response: httpx.Response) -> str:
        """
        Classify an HTTP response, raising the matching policy exception.

        Returns:
            Response body text for 2xx responses.

        Raises:
            RateLimitError: On HTTP 429.
            UnauthorizedError: On HTTP 401.
            TransientAPIError: On HTTP 408 and 5xx.
            APIError: On any other non-success status.
        """
        status_code: int = response.status_code

        if status_code == HTTP_STATUS_RATE_LIMITED:
            logger.warning('Rate limited by vendor (HTTP 429)')
            raise RateLimitError(
                message=f'Rate limit exceeded: HTTP {status_code}',
                status_code=status_code,
                response_body=response.text,
            )

        if status_code == HTTP_STATUS_UNAUTHORIZED:
            raise UnauthorizedError(
                message=f'Unauthorized: HTTP {status_code}',
                status_code=status_code,
                response_body=response.text,
            )

        if status_code == HTTP_STATUS_REQUEST_TIMEOUT or (
            HTTP_STATUS_SERVER_ERROR_MIN <= status_code <= HTTP_STATUS_SERVER_ERROR_MAX
        ):
            logger.warning(
                'Transient error %d: %s',
                status_code,
                _snippet(response.text),
            )
            raise TransientAPIError(
                message=f'Server error: HTTP {status_code}',
                status_code=status_code,
                response_body=response.text,
            )

        if not response.is_success:
            raise APIError(
                message=f'Client error: HTTP {status_code}',
                status_code=status_code,
                response_body=response.text,
            )

        return response.text


# =============================================================================
# Failure Messages
# =============================================================================


def _snippet(text: str | None) -> str:
    if not text:
        return 'no response body'
    return text[:ERROR_BODY_SNIPPET_LENGTH]


def _describe_api_error(error: APIError) -> str:
    """Build the failure message for a ServiceResponse."""
    if error.status_code is None:
        return str(error)
    return f'HTTP {error.status_code}: {_snippet(error.response_body)}'
