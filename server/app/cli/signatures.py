#!/usr/bin/env python3
"""
CLI for signature workflow maintenance
"""

import asyncio

import click

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import async_session_factory, engine, init_models
from app.integrations.esignature import build_provider_registry
from app.services.signature_request_service import ExpirationSweepResult, process_expired_requests


@click.group()
def cli():
    """E-signature workflow CLI tool"""
    settings = get_settings()
    configure_logging(settings.log_level, settings.environment)


@cli.command("init-db")
def init_db():
    """Create the signature workflow tables"""
    asyncio.run(_init_db())
    click.echo("Tables created")


async def _init_db() -> None:
    try:
        await init_models()
    finally:
        await engine.dispose()


@cli.command("process-expired")
def process_expired():
    """Expire PENDING signature requests whose deadline has passed"""
    result = asyncio.run(_process_expired())

    click.echo(f"Expired: {len(result.expired)}")
    click.echo(f"Skipped (changed concurrently): {result.skipped}")
    for request_id, error in result.failures.items():
        click.echo(f"Failed {request_id}: {error}", err=True)

    if result.failures:
        raise SystemExit(1)


async def _process_expired() -> ExpirationSweepResult:
    try:
        async with async_session_factory() as session:
            return await process_expired_requests(session)
    finally:
        await engine.dispose()


@cli.command()
def providers():
    """List the e-signature providers configured for this deployment"""
    registry = build_provider_registry(get_settings())
    names = registry.provider_names()
    if not names:
        click.echo("No providers configured")
        return

    for name in names:
        marker = " (default)" if name == registry.default_provider_name else ""
        click.echo(f"{name}{marker}")

    asyncio.run(registry.close())


if __name__ == "__main__":
    cli()
