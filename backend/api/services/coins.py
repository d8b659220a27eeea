# backend/api/services/coins.py
"""
Coin rewards for incident reports and their (simulated) conversion to
Ethiopian Birr. Balances and ledger rows live in DynamoDB (db/dynamo.py).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError
from pydantic import BaseModel

from db import dynamo
from services.settings import CoinSettings

log = logging.getLogger(__name__)


class ConversionResult(BaseModel):
    success: bool
    birr_amount: Optional[float] = None
    new_balance: Optional[int] = None
    error: Optional[str] = None


class CoinLedger:
    """
    `store` is anything exposing add_coin_transaction / get_coin_balance /
    get_coin_transactions (the dynamo module in production).
    """

    def __init__(self, settings: CoinSettings, store=dynamo):
        self.settings = settings
        self.store = store

    def report_award(self, is_verified: bool = False) -> int:
        """Coins a report earns under the current policy; writes nothing."""
        if is_verified:
            return self.settings.coins_per_verified_report
        return self.settings.coins_per_report

    def award_coins_for_report(self, user_id: str, incident_id: str, is_verified: bool = False) -> int:
        amount = self.report_award(is_verified)
        self.store.add_coin_transaction(
            user_id,
            transaction_type="earned",
            amount=amount,
            balance_delta=amount,
            incident_id=incident_id,
            description=(
                "Coins earned for verified incident report" if is_verified
                else "Coins earned for incident report"
            ),
        )
        log.info("Awarded %s coins to %s for incident %s", amount, user_id, incident_id)
        return amount

    def get_balance(self, user_id: str) -> int:
        return self.store.get_coin_balance(user_id)

    def get_transactions(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.store.get_coin_transactions(user_id, limit=limit)

    def convert_to_birr(self, user_id: str, coins: int) -> ConversionResult:
        """
        No payment gateway is involved: the conversion is recorded in the
        ledger and the balance is debited.
        """
        minimum = self.settings.min_coins_for_conversion
        if coins < minimum:
            return ConversionResult(success=False, error=f"Minimum {minimum} coins required for conversion")

        balance = self.store.get_coin_balance(user_id)
        if coins > balance:
            return ConversionResult(success=False, error="Insufficient coins")

        rate = self.settings.coin_to_birr_rate
        birr_amount = round(coins * rate, 2)
        try:
            self.store.add_coin_transaction(
                user_id,
                transaction_type="converted",
                amount=coins,
                balance_delta=-coins,
                birr_amount=birr_amount,
                exchange_rate=rate,
                description=f"Converted {coins} coins to {birr_amount} ETB",
            )
        except ClientError as e:
            # balance moved under us; the conditional debit refused it
            if e.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                return ConversionResult(success=False, error="Insufficient coins")
            raise

        return ConversionResult(
            success=True,
            birr_amount=birr_amount,
            new_balance=self.store.get_coin_balance(user_id),
        )
