# ambient_weather_client/realtime.py
"""
Push-based realtime readings over the vendor's Socket.IO endpoint.

RealtimeClient owns one socket connection and re-exposes the vendor events
as typed notifications:

    subscribed -> SubscriptionPayload   (on_subscribed listeners)
    data       -> DeviceReading         (on_data listeners)

Keys the vendor rejects arrive inside the `subscribed` payload rather than
as an error. They are additionally routed to on_invalid_api_keys listeners
and logged at WARNING so they cannot be missed.

State Machine:
--------------
    DISCONNECTED -> CONNECTING -> CONNECTED -> SUBSCRIBING -> SUBSCRIBED
    SUBSCRIBED   -> CONNECTED     (unsubscribe)
    any          -> DISCONNECTED  (transport lost or close_connection)

The socket reconnects on its own (5 s first delay, growing to 30 s). Each
transport connect, including reconnects, re-sends the subscription.

Socket.IO `connect`, `disconnect` and ping are protocol packets handled by
python-socketio itself, so they are never emitted as application events.

Concurrency:
------------
Not safe for concurrent subscribe/unsubscribe from several tasks; serialize
externally if shared.
"""

import inspect
import logging
import ssl
from collections.abc import Awaitable, Callable
from enum import Enum
from ssl import SSLContext
from types import TracebackType
from typing import Any, Self
from urllib.parse import urlencode

import aiohttp
import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketConnectionError

from ambient_weather_client.common import build_truststore_ssl_context
from ambient_weather_client.config import RealtimeConfig
from ambient_weather_client.models import (
    AmbientCredentials,
    DeviceReading,
    SubscriptionPayload,
)

__all__: list[str] = ['Listener', 'RealtimeClient', 'RealtimeState']

logger: logging.Logger = logging.getLogger(__name__)

# Vendor event names
EVENT_SUBSCRIBE: str = 'subscribe'
EVENT_UNSUBSCRIBE: str = 'unsubscribe'
EVENT_SUBSCRIBED: str = 'subscribed'
EVENT_DATA: str = 'data'

type Listener[EventT] = Callable[[EventT], Awaitable[None] | None]


class RealtimeState(str, Enum):
    """Lifecycle states of the realtime connection."""

    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    SUBSCRIBING = 'subscribing'
    SUBSCRIBED = 'subscribed'


class RealtimeClient:
    """
    Realtime wrapper around a python-socketio AsyncClient.

    Example:
        >>> async with RealtimeClient(credentials) as realtime:
        ...     remove = realtime.on_data(lambda reading: print(reading.outdoor_temperature_f))
        ...     await asyncio.sleep(600)
        ...     remove()
    """

    def __init__(
        self,
        credentials: AmbientCredentials,
        config: RealtimeConfig | None = None,
        socket_factory: Callable[..., socketio.AsyncClient] = socketio.AsyncClient,
    ) -> None:
        """
        Args:
            credentials: Application key and every API key to subscribe.
            config: Reconnection delays. None uses the defaults.
            socket_factory: Builds the socket client; replaceable in tests.
        """
        self._credentials: AmbientCredentials = credentials
        self._config: RealtimeConfig = config or RealtimeConfig()
        self._socket_factory: Callable[..., socketio.AsyncClient] = socket_factory

        self._socket: socketio.AsyncClient | None = None
        self._http_session: aiohttp.ClientSession | None = None
        self._state: RealtimeState = RealtimeState.DISCONNECTED

        self._data_listeners: list[Listener[DeviceReading]] = []
        self._subscribed_listeners: list[Listener[SubscriptionPayload]] = []
        self._invalid_key_listeners: list[Listener[list[str]]] = []

    @property
    def state(self) -> RealtimeState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._socket is not None and bool(self._socket.connected)

    # -------------------------------------------------------------------------
    # Listener Registration
    # -------------------------------------------------------------------------

    def on_data(self, listener: Listener[DeviceReading]) -> Callable[[], None]:
        """Register a listener for readings. Returns a callable that removes it."""
        return self._add_listener(self._data_listeners, listener)

    def on_subscribed(
        self, listener: Listener[SubscriptionPayload]
    ) -> Callable[[], None]:
        """Register a listener for subscription answers. Returns its remover."""
        return self._add_listener(self._subscribed_listeners, listener)

    def on_invalid_api_keys(self, listener: Listener[list[str]]) -> Callable[[], None]:
        """Register a listener for keys the vendor rejected. Returns its remover."""
        return self._add_listener(self._invalid_key_listeners, listener)

    @staticmethod
    def _add_listener[EventT](
        listeners: list[Listener[EventT]],
        listener: Listener[EventT],
    ) -> Callable[[], None]:
        listeners.append(listener)

        def remove() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def open_connection(self) -> None:
        """
        Connect to the realtime endpoint and subscribe all API keys.

        If the connect fails or is cancelled, the socket and any HTTP session
        are released before the error propagates, so the client can be
        opened again.

        Raises:
            ValueError: If the application key or any API key is blank.
            RuntimeError: If the connection is already open.
            socketio.exceptions.ConnectionError: If the connection fails.
        """
        self._credentials.check_realtime_scope()

        if self._socket is not None:
            raise RuntimeError('Realtime connection is already open')

        self._state = RealtimeState.CONNECTING
        logger.info('Opening realtime connection: %s', self._credentials.realtime_url)

        try:
            await self._connect()
        except SocketConnectionError as error:
            logger.error('Realtime connection failed: %s', error)
            await self._release()
            raise
        except BaseException as error:
            # Cancelled or failed some other way; the socket must not stay claimed
            logger.warning('Realtime connection attempt aborted: %r', error)
            await self._release()
            raise

    async def _connect(self) -> None:
        self._http_session = self._build_http_session()
        socket_options: dict[str, Any] = {
            'reconnection': True,
            'reconnection_attempts': 0,
            'reconnection_delay': self._config.reconnection_delay_seconds,
            'reconnection_delay_max': self._config.reconnection_delay_max_seconds,
            'ssl_verify': self._credentials.verify_ssl is not False,
        }
        if self._http_session is not None:
            socket_options['http_session'] = self._http_session

        self._socket = self._socket_factory(**socket_options)
        self._register_handlers(self._socket)

        query: str = urlencode(
            {
                'api': 1,
                'applicationKey': self._credentials.application_key.get_secret_value(),
            }
        )
        await self._socket.connect(
            f'{self._credentials.realtime_url.rstrip("/")}/?{query}',
            transports=['websocket'],
        )

    async def close_connection(self) -> None:
        """
        Unsubscribe and disconnect. Best effort: errors are logged, not raised.

        Safe to call when the connection is not open.
        """
        if self._socket is None:
            return

        logger.info('Closing realtime connection')
        try:
            if self._socket.connected:
                await self._socket.emit(EVENT_UNSUBSCRIBE)
            await self._socket.disconnect()
        except Exception:
            logger.warning('Error while closing realtime connection', exc_info=True)
        finally:
            await self._release()

    async def subscribe(self) -> None:
        """Send the subscription for every API key. No-op when not connected."""
        if not self.is_connected or self._socket is None:
            logger.debug('subscribe() ignored, not connected')
            return

        await self._send_subscribe(self._socket)

    async def _send_subscribe(self, socket: socketio.AsyncClient) -> None:
        self._state = RealtimeState.SUBSCRIBING
        logger.info('Subscribing %d API key(s)', len(self._credentials.api_keys))
        await socket.emit(
            EVENT_SUBSCRIBE, {'apiKeys': self._credentials.api_key_values()}
        )

    async def unsubscribe(self) -> None:
        """Drop the subscription without closing the socket. No-op when not connected."""
        if not self.is_connected or self._socket is None:
            logger.debug('unsubscribe() ignored, not connected')
            return

        logger.info('Unsubscribing')
        await self._socket.emit(EVENT_UNSUBSCRIBE)
        self._state = RealtimeState.CONNECTED

    async def __aenter__(self) -> Self:
        await self.open_connection()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close_connection()

    async def _release(self) -> None:
        self._socket = None
        self._state = RealtimeState.DISCONNECTED
        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build_http_session(self) -> aiohttp.ClientSession | None:
        """Session with a custom SSLContext, or None for the library default."""
        ssl_context: SSLContext | None = None

        if self._credentials.use_truststore:
            ssl_context = build_truststore_ssl_context()
        elif isinstance(self._credentials.verify_ssl, str):
            ssl_context = ssl.create_default_context(cafile=self._credentials.verify_ssl)

        if ssl_context is None:
            return None
        return aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=ssl_context))

    # -------------------------------------------------------------------------
    # Event Handlers
    # -------------------------------------------------------------------------

    def _register_handlers(self, socket: socketio.AsyncClient) -> None:
        socket.on('connect', self._handle_connect)
        socket.on('disconnect', self._handle_disconnect)
        socket.on('connect_error', self._handle_connect_error)
        socket.on(EVENT_SUBSCRIBED, self._handle_subscribed)
        socket.on(EVENT_DATA, self._handle_data)

    async def _handle_connect(self) -> None:
        logger.info('Realtime transport connected')
        self._state = RealtimeState.CONNECTED
        # The socket is not flagged connected yet while this handler runs
        if self._socket is not None:
            await self._send_subscribe(self._socket)

    async def _handle_disconnect(self, reason: Any = None) -> None:
        logger.info('Realtime transport disconnected (%s)', reason)
        self._state = RealtimeState.DISCONNECTED

    async def _handle_connect_error(self, data: Any = None) -> None:
        logger.warning('Realtime connection error: %s', data)

    async def _handle_subscribed(self, payload: Any) -> None:
        try:
            subscription: SubscriptionPayload = SubscriptionPayload.model_validate(
                payload or {}
            )
        except ValidationError as error:
            logger.warning('Ignoring malformed subscribed event: %s', error)
            return

        if subscription.method == EVENT_UNSUBSCRIBE:
            self._state = RealtimeState.CONNECTED
        else:
            self._state = RealtimeState.SUBSCRIBED

        logger.info(
            'Subscription confirmed: %d device(s)',
            len(subscription.devices),
        )
        await self._dispatch(self._subscribed_listeners, subscription)

        if subscription.has_invalid_api_keys:
            logger.warning(
                'Vendor rejected %d API key(s)',
                len(subscription.invalid_api_keys),
            )
            await self._dispatch(
                self._invalid_key_listeners, list(subscription.invalid_api_keys)
            )

    async def _handle_data(self, payload: Any) -> None:
        try:
            reading: DeviceReading = DeviceReading.model_validate(payload)
        except ValidationError as error:
            logger.warning('Ignoring malformed data event: %s', error)
            return

        logger.debug('Reading received from %s', reading.mac_address)
        await self._dispatch(self._data_listeners, reading)

    @staticmethod
    async def _dispatch[EventT](
        listeners: list[Listener[EventT]],
        event: EventT,
    ) -> None:
        """Notify every listener; a failing listener does not stop the others."""
        for listener in list(listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception('Realtime listener %r failed', listener)
