"""One independent escrow instance: repository, collaborators, engine, queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .config import EscrowConfig
from .engine import EscrowEngine
from .ledger import InMemoryLedger, Ledger
from .oracle import HeightOracle, ManualHeightOracle
from .queries import EscrowQueries
from .store import EscrowRepository
from .types import Identity


@dataclass
class EscrowDeployment:
    config: EscrowConfig
    repository: EscrowRepository
    ledger: Ledger
    oracle: HeightOracle
    engine: EscrowEngine
    queries: EscrowQueries


def deploy(
    config: Optional[EscrowConfig] = None,
    ledger: Optional[Ledger] = None,
    oracle: Optional[HeightOracle] = None,
    repository: Optional[EscrowRepository] = None,
    balances: Optional[Mapping[Identity, int]] = None,
) -> EscrowDeployment:
    """Wire up a deployment. Missing collaborators get in-memory defaults."""
    config = config or EscrowConfig()
    if ledger is None:
        ledger = InMemoryLedger(balances)
    elif balances:
        raise ValueError("balances only apply to the default in-memory ledger")
    if oracle is None:
        oracle = ManualHeightOracle(config.initial_height)
    repository = repository or EscrowRepository()
    return EscrowDeployment(
        config=config,
        repository=repository,
        ledger=ledger,
        oracle=oracle,
        engine=EscrowEngine(repository, ledger, oracle, config),
        queries=EscrowQueries(repository, ledger, oracle, config),
    )
