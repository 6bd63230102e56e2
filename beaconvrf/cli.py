"""
beaconvrf.cli
-------------

Command line for operators, requesters and fulfillers.

Usage:
  beaconvrf params
  beaconvrf quote --gas 100000
  beaconvrf state 7
  beaconvrf request --requester 0x.. --deadline 1713245000 --gas 100000
  beaconvrf fulfill 7
  beaconvrf round --show-key
  beaconvrf serve --config ./beaconvrf.yaml --fee-per-gas 1000000000 --fulfill

Environment:
  BEACONVRF_RPC_URL  : coordinator HTTP endpoint (default: http://127.0.0.1:8650)
  BEACONVRF_*        : coordinator config for ``serve`` (see CoordinatorConfig.from_env)
"""

from __future__ import annotations

import json
import os
import sys
import threading
import time
from typing import Any, Dict, Optional

import requests
import typer

from . import logging as vlog
from .beacon.drand import DrandClient, DrandError
from .config import CoordinatorConfig

_DEFAULT_RPC = os.getenv("BEACONVRF_RPC_URL") or "http://127.0.0.1:8650"

app = typer.Typer(
    name="beaconvrf",
    help="Verifiable randomness coordinator on the drand evmnet beacon.",
    no_args_is_help=True,
    add_completion=False,
)


def _http(
    method: str,
    url: str,
    *,
    body: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = 30.0,
) -> Any:
    try:
        r = requests.request(method, url, json=body, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise SystemExit(f"HTTP {method} {url} failed: {e}")
    try:
        data = r.json()
    except ValueError:
        raise SystemExit(f"response not JSON (HTTP {r.status_code}): {r.text[:200]}")
    if r.status_code != 200:
        detail = data.get("detail", data) if isinstance(data, dict) else data
        raise SystemExit(f"rejected (HTTP {r.status_code}): {json.dumps(detail, indent=2)}")
    return data


def _echo(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _drand(url: Optional[str], chain: Optional[str]) -> DrandClient:
    cfg = CoordinatorConfig.from_env()
    return DrandClient(url or cfg.beacon.drand_url, chain or cfg.beacon.chain_name)


@app.command("params")
def cmd_params(rpc: str = typer.Option(_DEFAULT_RPC, "--rpc", help="Coordinator endpoint.")) -> None:
    """Show the coordinator's parameters."""
    _echo(_http("GET", f"{rpc}/vrf/params"))


@app.command("quote")
def cmd_quote(
    gas: int = typer.Option(..., "--gas", "-g", min=0, help="Callback gas limit."),
    rpc: str = typer.Option(_DEFAULT_RPC, "--rpc"),
) -> None:
    """Exact payment required for a request with this callback gas limit."""
    _echo(_http("GET", f"{rpc}/vrf/quote", params={"callback_gas_limit": gas}))


@app.command("state")
def cmd_state(
    request_id: int = typer.Argument(..., min=0),
    rpc: str = typer.Option(_DEFAULT_RPC, "--rpc"),
) -> None:
    """Lifecycle state of a request."""
    _echo(_http("GET", f"{rpc}/vrf/requests/{request_id}/state"))


@app.command("request")
def cmd_request(
    requester: str = typer.Option(..., "--requester", "-r", help="0x-hex requester address."),
    deadline: Optional[int] = typer.Option(
        None, "--deadline", "-d", help="UNIX seconds (default: now + --in)."
    ),
    in_s: int = typer.Option(30, "--in", help="Seconds from now when --deadline is omitted."),
    gas: int = typer.Option(100_000, "--gas", "-g", min=0, help="Callback gas limit."),
    rpc: str = typer.Option(_DEFAULT_RPC, "--rpc"),
) -> None:
    """Quote, then create a request paying exactly the quoted price."""
    quote = _http("GET", f"{rpc}/vrf/quote", params={"callback_gas_limit": gas})
    body = {
        "requester": requester,
        "deadline": deadline if deadline is not None else int(time.time()) + in_s,
        "callback_gas_limit": gas,
        "payment": quote["total_price"],
    }
    _echo(_http("POST", f"{rpc}/vrf/requests", body=body))


@app.command("fulfill")
def cmd_fulfill(
    request_id: int = typer.Argument(..., min=0),
    rpc: str = typer.Option(_DEFAULT_RPC, "--rpc"),
    drand_url: Optional[str] = typer.Option(None, "--drand-url"),
    chain: Optional[str] = typer.Option(None, "--chain"),
) -> None:
    """Fetch the request's round signature from drand and submit it."""
    evs = _http("GET", f"{rpc}/vrf/events", params={"kind": "RandomnessRequested", "request_id": request_id})
    if not evs["events"]:
        raise SystemExit(f"no RandomnessRequested event for request {request_id}")
    ev = evs["events"][0]
    try:
        sig = _drand(drand_url, chain).signature(int(ev["round"]))
    except (DrandError, ValueError) as e:
        raise SystemExit(f"drand: {e}")
    body = {
        "requester": ev["requester"],
        "beacon_key_hash": ev["beacon_key_hash"],
        "round": ev["round"],
        "callback_gas_limit": ev["callback_gas_limit"],
        "signature": {"x": hex(sig.x), "y": hex(sig.y)},
    }
    _echo(_http("POST", f"{rpc}/vrf/requests/{request_id}/fulfill", body=body))


@app.command("round")
def cmd_round(
    show_key: bool = typer.Option(False, "--show-key", help="Also print the chain's G2 public key limbs."),
    drand_url: Optional[str] = typer.Option(None, "--drand-url"),
    chain: Optional[str] = typer.Option(None, "--chain"),
) -> None:
    """Latest round published by the drand relay."""
    client = _drand(drand_url, chain)
    try:
        latest = client.latest()
        out: Dict[str, Any] = {"chain": client.chain, "round": latest.round, "signature": latest.signature}
        if show_key:
            info = client.info()
            out["public_key"] = [str(v) for v in info.public_key.limbs()]
            out["genesis_time"] = info.genesis_time
            out["period"] = info.period
    except DrandError as e:
        raise SystemExit(f"drand: {e}")
    _echo(out)


@app.command("serve")
def cmd_serve(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="JSON/YAML config (default: env)."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8650, "--port"),
    fee_per_gas: int = typer.Option(1_000_000_000, "--fee-per-gas", help="Static network fee (wei/gas)."),
    fulfill: bool = typer.Option(False, "--fulfill", help="Also run a drand fulfiller in-process."),
    interval: float = typer.Option(3.0, "--interval", help="Fulfiller poll interval (seconds)."),
) -> None:
    """Run the coordinator HTTP service."""
    from .coordinator.engine import Coordinator
    from .fees.gas_station import StaticGasStation
    from .fulfiller import DrandSignatureSource, Fulfiller
    from .rpc.mount import create_app

    vlog.configure()
    cfg = CoordinatorConfig.from_file(config) if config else CoordinatorConfig.from_env()
    client = DrandClient(cfg.beacon.drand_url, cfg.beacon.chain_name)
    if cfg.beacon.public_key is None:
        try:
            info = client.info()
        except DrandError as e:
            raise SystemExit(f"beacon.public_key not configured and drand /info failed: {e}")
        cfg.beacon.public_key = list(info.public_key.limbs())
        cfg.beacon.genesis_timestamp = info.genesis_time
        cfg.beacon.period = info.period

    coordinator = Coordinator.from_config(cfg, gas_station=StaticGasStation(fee_per_gas))
    api = create_app(coordinator)

    worker: Optional[Fulfiller] = None
    if fulfill:
        worker = Fulfiller(coordinator, DrandSignatureSource(client))
        threading.Thread(target=worker.run_forever, kwargs={"interval_s": interval}, daemon=True).start()

    import uvicorn

    try:
        uvicorn.run(api, host=host, port=port, log_level="info", workers=1)
    finally:
        if worker is not None:
            worker.stop()
        coordinator.kv.close()


def main() -> None:  # pragma: no cover
    try:
        app(prog_name="beaconvrf")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
