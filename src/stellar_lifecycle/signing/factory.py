"""Admin signer factory.

Creates the signing backend for install operations from settings. Returns
None when no admin secret is configured; the provisioner turns that into a
ConfigurationError before touching the network.
"""

import logging
from typing import Optional

from stellar_lifecycle.config import Settings
from stellar_lifecycle.crypto import decrypt_secret
from stellar_lifecycle.signing.base import OperationSigner

logger = logging.getLogger(__name__)


def get_admin_signer(settings: Settings) -> Optional[OperationSigner]:
    """Build the admin signer for the configured mode.

    Raises:
        ConfigurationError: Secret present but unusable
    """
    if settings.dry_run:
        from stellar_lifecycle.signing.simulated import SimulatedSigner

        logger.info("Dry-run mode: using simulated admin signer")
        return SimulatedSigner()

    if not settings.has_admin_secret:
        logger.info("No admin secret configured - install operations disabled")
        return None

    from stellar_lifecycle.signing.stellar import StellarSdkSigner

    secret = decrypt_secret(settings.wasm_admin_secret, settings.master_key)
    signer = StellarSdkSigner(
        secret=secret,
        rpc_url=settings.soroban_rpc_url,
        network_passphrase=settings.network_passphrase,
        install_fee=settings.install_fee,
        ttl_bump_fee=settings.ttl_bump_fee,
        tx_timeout=settings.tx_timeout,
    )
    logger.info(f"Admin signer ready for account {signer.public_key}")
    return signer
