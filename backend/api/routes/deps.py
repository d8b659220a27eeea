# Shared FastAPI dependencies; tests swap these via app.dependency_overrides.
from db import dynamo
from services.coins import CoinLedger
from services.intake import IncidentIntake
from services.settings import get_coin_settings, get_intake_settings


def get_store():
    return dynamo


def get_ledger() -> CoinLedger:
    return CoinLedger(get_coin_settings(), store=dynamo)


def get_intake() -> IncidentIntake:
    return IncidentIntake(store=dynamo, ledger=get_ledger(), settings=get_intake_settings())
