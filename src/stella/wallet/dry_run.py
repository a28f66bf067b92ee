"""Simulated wallet extension for dry-run mode.

Approves access for a fixed address and returns envelopes unchanged as
"signed". Anchors reject these envelopes, so this is only useful against a
simulated backend or to exercise the session state machine.
"""

import logging
from typing import Any

from stella.wallet.base import ExtensionError, WalletExtension, truncate_address

logger = logging.getLogger(__name__)


class DryRunExtension(WalletExtension):
    """Extension stand-in that never touches a key."""

    def __init__(self, address: str, approve: bool = True, pre_approved: bool = False):
        """Initialize the simulated extension.

        Args:
            address: Address returned when access is granted
            approve: Whether access and signing requests are approved
            pre_approved: Whether access counts as already granted (silent reconnect)
        """
        self.address = address
        self.approve = approve
        self.pre_approved = pre_approved
        self.signed_count = 0

    @property
    def name(self) -> str:
        return "dry_run"

    async def is_connected(self) -> Any:
        return {"isConnected": bool(self.address)}

    async def is_allowed(self) -> Any:
        return {"isAllowed": self.pre_approved}

    async def request_access(self) -> Any:
        if not self.approve:
            raise ExtensionError("User declined access")
        self.pre_approved = True
        return {"address": self.address}

    async def get_address(self) -> Any:
        return {"address": self.address if self.pre_approved else ""}

    async def sign_transaction(self, envelope: str, network_passphrase: str, address: str) -> Any:
        if not self.approve:
            raise ExtensionError("User declined signing")
        if address != self.address:
            raise ExtensionError(f"Unknown signer {truncate_address(address)}")

        self.signed_count += 1
        logger.info(f"[DRY RUN] Simulated signature #{self.signed_count} for {truncate_address(address)}")
        return {"signedTxXdr": envelope, "signerAddress": address}
