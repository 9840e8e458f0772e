import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends
from xrpl.clients import JsonRpcClient
from xrpl.constants import XRPLException
from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.requests import AccountNFTs, Tx
from xrpl.models.transactions import Payment
from xrpl.transaction import submit_and_wait
from xrpl.utils import str_to_hex, xrp_to_drops
from xrpl.wallet import Wallet

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# NFTokenMint flag: tfTransferable
TF_TRANSFERABLE = 8


# ----------------------------
# tx_json templates (signed by the creator's wallet app)
# ----------------------------
def build_payment_tx_json(destination: str, amount_xrp: Decimal) -> Dict[str, Any]:
    return {
        "TransactionType": "Payment",
        "Destination": destination,
        "Amount": xrp_to_drops(amount_xrp),
    }


def build_mint_tx_json(account: str, metadata_cid: str) -> Dict[str, Any]:
    return {
        "TransactionType": "NFTokenMint",
        "Account": account,
        "URI": str_to_hex(f"ipfs://{metadata_cid}"),
        "Flags": TF_TRANSFERABLE,
        "NFTokenTaxon": 0,
    }


def build_set_regular_key_tx_json(account: str, regular_key: str) -> Dict[str, Any]:
    return {
        "TransactionType": "SetRegularKey",
        "Account": account,
        "RegularKey": regular_key,
    }


# ----------------------------
# tx result helpers
# ----------------------------
def tx_json_of(tx_result: Dict[str, Any]) -> Dict[str, Any]:
    """API v2 nests the transaction under tx_json, v1 returns it flat."""
    return tx_result.get("tx_json") or tx_result


def transaction_result(tx_result: Dict[str, Any]) -> Optional[str]:
    meta = tx_result.get("meta") or {}
    if not isinstance(meta, dict):
        return None
    return meta.get("TransactionResult")


def extract_nftoken_id(tx_result: Dict[str, Any]) -> Optional[str]:
    meta = tx_result.get("meta") or {}
    if not isinstance(meta, dict):
        return None
    nft_id = meta.get("nftoken_id")
    if nft_id:
        return nft_id
    for n in meta.get("AffectedNodes") or []:
        created = n.get("CreatedNode") or {}
        fields = created.get("NewFields") or {}
        if created.get("LedgerEntryType") == "NFToken" and "NFTokenID" in fields:
            return fields["NFTokenID"]
        if created.get("LedgerEntryType") == "NFTokenPage":
            tokens = fields.get("NFTokens") or []
            if tokens:
                return (tokens[0].get("NFToken") or {}).get("NFTokenID")
    return None


class XRPLService:
    def __init__(self, config: Settings):
        self.config = config
        self.client = JsonRpcClient(config.xrpl_rpc_url)

    def _get_distributor_wallet(self) -> Wallet:
        seed = self.config.cfc_distributor_seed
        if not seed:
            raise UpstreamUnavailable("CFC distributor wallet is not configured")
        return Wallet.from_seed(seed)

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        """
        Look up a transaction. A hash the node does not know yet comes back as
        ``{"validated": False}`` so callers can treat it as still pending.
        """
        try:
            resp = self.client.request(Tx(transaction=tx_hash))
        except (XRPLException, httpx.HTTPError) as e:
            logger.error("XRPL tx lookup failed for %s: %s", tx_hash, e)
            raise UpstreamUnavailable("XRPL node unavailable") from e

        if not resp.is_successful():
            if (resp.result or {}).get("error") == "txnNotFound":
                return {"validated": False}
            logger.error("XRPL tx lookup error for %s: %s", tx_hash, resp.result)
            raise UpstreamUnavailable("XRPL node returned an error")
        return resp.result

    def account_tokens(self, account: str) -> List[Dict[str, Any]]:
        try:
            resp = self.client.request(AccountNFTs(account=account, ledger_index="validated"))
        except (XRPLException, httpx.HTTPError) as e:
            logger.error("XRPL account_nfts failed for %s: %s", account, e)
            raise UpstreamUnavailable("XRPL node unavailable") from e

        if not resp.is_successful():
            if (resp.result or {}).get("error") == "actNotFound":
                return []
            raise UpstreamUnavailable("XRPL node returned an error")
        return resp.result.get("account_nfts", [])

    def send_token_payment(self, destination: str, amount: Decimal) -> str:
        """Pay ``amount`` CFC from the distributor wallet and return the tx hash."""
        wallet = self._get_distributor_wallet()
        payment = Payment(
            account=wallet.classic_address,
            destination=destination,
            amount=IssuedCurrencyAmount(
                currency=self.config.cfc_currency,
                issuer=self.config.cfc_issuer,
                value=format(amount.normalize(), "f"),
            ),
        )
        try:
            response = submit_and_wait(payment, self.client, wallet)
        except (XRPLException, httpx.HTTPError) as e:
            raise UpstreamUnavailable(f"XRPL payment to {destination} failed: {e}") from e

        result = transaction_result(response.result)
        if not response.is_successful() or result != "tesSUCCESS":
            raise UpstreamUnavailable(f"XRPL payment to {destination} failed: {result}")

        tx_hash = response.result.get("hash") or tx_json_of(response.result).get("hash")
        logger.info("Sent %s %s to %s in %s", amount, self.config.cfc_currency, destination, tx_hash)
        return tx_hash


def get_ledger(config: Settings = Depends(get_settings)) -> XRPLService:
    return XRPLService(config)
