"""
CLI entry point for the BitDSM operator.
"""

from pathlib import Path
from typing import Optional

import typer
import structlog

from .config import OperatorConfig
from .errors import RegistrationError
from .operator_client import BitDSMOperator
from .signer import (
    BitcoinDepositRequest,
    deposit_confirmation_hash,
    deposit_confirmation_message,
    sign_deposit_confirmation,
    strip_hex_prefix,
)

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="bitdsm-operator",
    help="BitDSM AVS operator: registration and deposit confirmations",
    add_completion=False,
)

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to .env configuration file",
)


def _load_operator(config_path: Optional[Path]) -> BitDSMOperator:
    config = OperatorConfig.from_env(config_path)
    try:
        return BitDSMOperator(config)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _register(operator: BitDSMOperator) -> None:
    try:
        result = operator.register_operator()
    except RegistrationError as e:
        typer.echo(f"Error in registering as operator: {e.__cause__ or e}", err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Operator address: {result.operator}")
    if result.registered_eigenlayer:
        typer.echo(f"✓ Registered to EigenLayer core contracts: {result.eigenlayer_tx}")
    else:
        typer.echo("Operator already registered to EigenLayer core contracts")
    if result.registered_avs:
        typer.echo(f"✓ Registered to AVS: {result.avs_tx}")
    else:
        typer.echo("Operator already registered to AVS")


def _deregister(operator: BitDSMOperator) -> None:
    tx = operator.deregister_operator()
    if tx:
        typer.echo(f"✓ Deregistered from AVS: {tx.tx_hash}")
    else:
        typer.echo("✗ Deregistration failed (see log)")


def _monitor(operator: BitDSMOperator, reference_task: bool, once: bool) -> None:
    try:
        watcher = operator.monitor_new_tasks(reference_task=reference_task)
    except Exception as e:
        typer.echo(f"Error monitoring tasks: {e}", err=True)
        raise typer.Exit(1)

    if once:
        count = watcher.poll_once()
        typer.echo(f"Processed {count} deposit requests")
        return

    typer.echo("Monitoring for new tasks. Press Ctrl+C to stop.")
    try:
        watcher.run()
    except KeyboardInterrupt:
        typer.echo("\nStopping watcher...")
        watcher.stop()


@app.command()
def register(config_path: Optional[Path] = ConfigOption) -> None:
    """
    Register the operator with EigenLayer and the BitDSM AVS.
    """
    _register(_load_operator(config_path))


@app.command()
def deregister(config_path: Optional[Path] = ConfigOption) -> None:
    """
    Deregister the operator from the BitDSM AVS registry.
    """
    _deregister(_load_operator(config_path))


@app.command()
def monitor(
    config_path: Optional[Path] = ConfigOption,
    reference_task: bool = typer.Option(
        True,
        "--reference-task/--no-reference-task",
        help="Submit a reference deposit request before watching",
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Poll once and exit (useful for testing)",
    ),
) -> None:
    """
    Watch for deposit verification requests and confirm them.
    """
    _monitor(_load_operator(config_path), reference_task, once)


@app.command()
def run(
    config_path: Optional[Path] = ConfigOption,
    deregister_after: bool = typer.Option(
        False,
        "--deregister",
        help="Deregister from the AVS after registering",
    ),
    monitor_tasks: bool = typer.Option(
        False,
        "--monitor",
        help="Watch for deposit requests after registering",
    ),
) -> None:
    """
    Register, then optionally deregister and/or monitor for deposit requests.
    """
    operator = _load_operator(config_path)
    _register(operator)
    if deregister_after:
        _deregister(operator)
    if monitor_tasks:
        _monitor(operator, reference_task=True, once=False)


@app.command()
def status(config_path: Optional[Path] = ConfigOption) -> None:
    """
    Show the operator's registration state.
    """
    operator = _load_operator(config_path)
    try:
        state = operator.status()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Operator:             {state.operator}")
    typer.echo(f"EigenLayer operator:  {'yes' if state.eigenlayer_operator else 'no'}")
    typer.echo(f"AVS registered:       {'yes' if state.avs_registered else 'no'}")


@app.command()
def sign_deposit(
    pod: str = typer.Argument(..., help="Bitcoin pod address (0x...)"),
    operator: str = typer.Argument(..., help="Operator EVM address (0x...)"),
    txid: str = typer.Argument(..., help="Bitcoin transaction ID as bytes32 hex"),
    amount: int = typer.Argument(..., help="Deposit amount in satoshis"),
    settled: bool = typer.Option(False, "--settled", help="Sign with isPending=false"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """
    Sign a deposit confirmation offline (no RPC access).
    """
    config = OperatorConfig.from_env(config_path)
    try:
        private_key = config.require_private_key()
        transaction_id = bytes.fromhex(strip_hex_prefix(txid))
        if len(transaction_id) != 32:
            raise ValueError(f"txid must be 32 bytes, got {len(transaction_id)}")

        request = BitcoinDepositRequest(
            transaction_id=transaction_id,
            amount=amount,
            is_pending=not settled,
        )
        message = deposit_confirmation_message(pod, operator, request)
        message_hash = deposit_confirmation_hash(pod, operator, request)
        signature = sign_deposit_confirmation(pod, operator, request, private_key)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Message:   {message}")
    typer.echo(f"Hash:      0x{message_hash.hex()}")
    typer.echo(f"Signature: 0x{signature.hex()}")


@app.command()
def version() -> None:
    """Show the operator version."""
    from bitdsm_operator import __version__
    typer.echo(f"bitdsm-operator v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
