# gpswox_hub/common/truststore_context.py
"""
SSL context backed by the operating system trust store.

Some GPSwox deployments are reached through TLS-intercepting corporate proxies
whose root CA lives only in the OS certificate store. With
`use_truststore: true` in the provider config, the HTTP client verifies
certificates against that store instead of the certifi bundle.

`truststore` is an optional dependency and is only imported when requested.
"""

import ssl
from ssl import SSLContext

__all__: list[str] = ['build_truststore_ssl_context']


def build_truststore_ssl_context() -> SSLContext:
    """
    Create a client-side SSLContext that validates against the OS trust store.

    Returns:
        A truststore SSLContext negotiated with PROTOCOL_TLS_CLIENT.

    Raises:
        RuntimeError: If the truststore package is not installed.
    """
    try:
        import truststore  # noqa: PLC0415
    except ImportError as import_error:
        raise RuntimeError(
            'truststore is required when use_truststore=True; '
            'install it with: pip install "gpswox-tracking-hub[truststore]"'
        ) from import_error

    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
