from __future__ import annotations

import functools
from typing import Callable, Dict, Iterator

import pytest

from beaconvrf.beacon.registry import BeaconRegistry
from beaconvrf.config import BeaconConfig, CoordinatorConfig
from beaconvrf.consumer import RandomnessConsumer
from beaconvrf.coordinator import Coordinator, ReceiverRegistry
from beaconvrf.crypto.bls import KeyPair
from beaconvrf.fees.gas_station import StaticGasStation
from beaconvrf.store import KeyValue, open_store
from beaconvrf.types.core import G1Point

GENESIS = 1_000_000
PERIOD = 3
# on a period boundary: current round is 1001
NOW = GENESIS + 1_000 * PERIOD

CHAIN_ID = 31337
COORDINATOR = bytes.fromhex("c0" * 20)
OWNER = bytes.fromhex("0a" * 20)
REQUESTER = bytes.fromhex("11" * 20)
OTHER = bytes.fromhex("22" * 20)

FEE_PER_GAS = 10 * 10**9
CB_GAS = 100_000


class Transfers:
    """Recording transfer adapter."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[bytes, int]] = []

    def __call__(self, recipient: bytes, amount: int) -> bool:
        if self.ok:
            self.sent.append((recipient, amount))
        return self.ok


@pytest.fixture(scope="session")
def keypair() -> KeyPair:
    return KeyPair.from_seed(b"beaconvrf-test-beacon")


@pytest.fixture(scope="session")
def sign(keypair: KeyPair) -> Callable[[int], G1Point]:
    """Round signer with a cache; hashing to G1 and scalar mults are slow in pure Python."""
    return functools.lru_cache(maxsize=None)(keypair.sign_round)


@pytest.fixture(scope="session")
def registry(keypair: KeyPair) -> BeaconRegistry:
    reg = BeaconRegistry()
    reg.register(keypair.public, genesis_timestamp=GENESIS, period=PERIOD)
    return reg


@pytest.fixture
def config() -> CoordinatorConfig:
    return CoordinatorConfig(
        chain_id=CHAIN_ID,
        coordinator_address="0x" + COORDINATOR.hex(),
        owner_address="0x" + OWNER.hex(),
        beacon=BeaconConfig(genesis_timestamp=GENESIS, period=PERIOD),
    )


@pytest.fixture(params=["memory://", "sqlite:///:memory:"], ids=["memory", "sqlite"])
def kv(request: pytest.FixtureRequest) -> Iterator[KeyValue]:
    store = open_store(request.param)
    yield store
    store.close()


@pytest.fixture
def memory_kv() -> Iterator[KeyValue]:
    store = open_store("memory://")
    yield store
    store.close()


@pytest.fixture
def gas_station() -> StaticGasStation:
    return StaticGasStation(FEE_PER_GAS)


@pytest.fixture
def transfers() -> Transfers:
    return Transfers()


@pytest.fixture
def receivers() -> ReceiverRegistry:
    return ReceiverRegistry()


@pytest.fixture
def consumers(receivers: ReceiverRegistry) -> Dict[bytes, RandomnessConsumer]:
    out = {}
    for addr in (REQUESTER, OTHER):
        c = RandomnessConsumer(addr, COORDINATOR)
        receivers.register(addr, c)
        out[addr] = c
    return out


def make_coordinator(config, kv, registry, gas_station, receivers, transfers) -> Coordinator:
    return Coordinator(
        config,
        kv=kv,
        registry=registry,
        gas_station=gas_station,
        receivers=receivers,
        transfer=transfers,
        clock=lambda: NOW,
    )


@pytest.fixture
def coordinator(config, memory_kv, registry, gas_station, receivers, consumers, transfers) -> Coordinator:
    return make_coordinator(config, memory_kv, registry, gas_station, receivers, transfers)


@pytest.fixture
def any_coordinator(config, kv, registry, gas_station, receivers, consumers, transfers) -> Coordinator:
    """Coordinator parametrized over both storage backends."""
    return make_coordinator(config, kv, registry, gas_station, receivers, transfers)


@pytest.fixture
def new_request(coordinator: Coordinator) -> Callable[..., int]:
    def _new(requester: bytes = REQUESTER, *, deadline: int = NOW + 60, gas: int = CB_GAS) -> int:
        q = coordinator.quote(gas)
        return coordinator.create(
            requester=requester, deadline=deadline, callback_gas_limit=gas, payment=q.total_price
        )

    return _new
