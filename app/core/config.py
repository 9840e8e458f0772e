from decimal import Decimal
from typing import Dict, List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "CFC NFT Creator Backend"
    app_version: str = "1.0.0"
    app_description: str = "Creator submissions, mint payments and learn-to-earn rewards"
    log_level: str = "INFO"
    port: int = 4000

    database_url: str = "sqlite:///./cfc_creator.db"

    cors_origins: List[str] = [
        "https://centerforcreators.com",
        "https://centerforcreators.github.io",
    ]

    # Admin
    admin_password: str = ""

    # Pinata
    pinata_jwt: str = ""
    pinata_gateway: str = "https://gateway.pinata.cloud/ipfs"

    # Xumm / Xaman signing platform
    xumm_api_key: str = ""
    xumm_api_secret: str = ""
    xumm_api_url: str = "https://xumm.app/api/v1/platform"
    xumm_timeout: float = 20.0
    creator_page_url: str = "https://centerforcreators.com/nft-creator"

    # XRPL
    xrpl_rpc_url: str = "https://s2.ripple.com:51234/"
    payment_destination: str = "rU15yYD3cHmNXGxHJSJGoLUSogxZ17FpKd"
    mint_fee_xrp: Decimal = Decimal("1")
    require_approval_before_payment: bool = True
    verify_on_ledger: bool = False

    # CFC reward token
    cfc_distributor_seed: str = ""
    cfc_issuer: str = ""
    cfc_currency: str = "CFC"

    # Marketplace
    marketplace_url: str = "https://cfc-nft-shared-mint-backend.onrender.com/api/add-nft"
    marketplace_timeout: float = 10.0
    marketplace_regular_key: str = ""

    # Learn-to-earn
    reward_rules_timeout: float = 4.0
    default_learn_rewards: Dict[str, Decimal] = {
        "read": Decimal("10"),  # page read (after 60s)
        "activity": Decimal("20"),  # book / workshop activity
    }
    payout_batch_limit: int = 50

    class Config:
        env_file = ".env"


settings = Settings()


def get_settings() -> Settings:
    return settings
