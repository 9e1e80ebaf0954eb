# gpswox_hub/common/__init__.py

from gpswox_hub.common.logger import mask_email, setup_logger
from gpswox_hub.common.truststore_context import build_truststore_ssl_context

__all__: list[str] = [
    'build_truststore_ssl_context',
    'mask_email',
    'setup_logger',
]
