# Import all models here so Base.metadata sees every table
from app.domains.learn.models import RewardLedgerEntry
from app.domains.submissions.models import Submission

__all__ = ["RewardLedgerEntry", "Submission"]
