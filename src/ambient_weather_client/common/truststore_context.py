# ambient_weather_client/common/truststore_context.py
"""
SSL context backed by the operating system's trust store.

Behind TLS-inspecting proxies (Zscaler and similar) the proxy's root CA is
installed in the Windows/macOS store but unknown to certifi, so both the
REST client and the realtime websocket fail certificate verification. An
SSLContext from `truststore` trusts what the OS trusts.

`truststore` is optional and imported lazily: it is only needed when
`use_truststore=True`.
"""

import ssl
from ssl import SSLContext

__all__: list[str] = ['build_truststore_ssl_context']


def build_truststore_ssl_context() -> SSLContext:
    """
    Create a client SSLContext that validates against the OS trust store.

    Returns:
        SSLContext using PROTOCOL_TLS_CLIENT with system certificates.

    Raises:
        RuntimeError: If truststore is not installed.
    """
    try:
        import truststore  # noqa: PLC0415
    except ImportError as import_error:
        raise RuntimeError(
            'truststore is required when use_truststore=True; '
            'install it with: pip install ambient-weather-client[truststore]'
        ) from import_error

    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
