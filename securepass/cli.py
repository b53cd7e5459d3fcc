#!/usr/bin/env python3
"""
SecurePass - Secure Password Generator CLI
"""
import logging
import sys
import time
from typing import Optional

import click
import pyperclip
import uvicorn
from tabulate import tabulate

from . import __version__
from .config import load_settings
from .generator import (
    DIGITS,
    SYMBOLS,
    ConfigurationError,
    generate as generate_password,
    normalize_config,
)
from .server import create_app

LOG_LEVELS = ['critical', 'error', 'warning', 'info', 'debug']


def secure_clipboard_copy(password: str) -> Optional[str]:
    """Copy password to clipboard. Returns the previous contents, or None without a clipboard"""
    try:
        original_clipboard = pyperclip.paste()
        pyperclip.copy(password)
    except pyperclip.PyperclipException:
        return None
    return original_clipboard or ""


def restore_clipboard(password: str, original_clipboard: str, timeout: int):
    """
    Wait `timeout` seconds, then put the previous contents back.

    Runs in the foreground so the process stays alive until the clear happens;
    an interrupt cuts the wait short but still restores.
    """
    try:
        time.sleep(timeout)
    finally:
        try:
            # Only clear if it's still our password
            if pyperclip.paste() == password:
                pyperclip.copy(original_clipboard)
        except pyperclip.PyperclipException:
            pass


def character_counts(password: str) -> list:
    """Per-class character counts: lowercase, uppercase, digits, symbols"""
    return [
        sum(c.islower() for c in password),
        sum(c.isupper() for c in password),
        sum(c in DIGITS for c in password),
        sum(c in SYMBOLS for c in password),
    ]


@click.group()
@click.version_option(version=__version__, prog_name="SecurePass")
def cli():
    """SecurePass - A secure password generator

    Every character comes from the operating system's CSPRNG, every selected
    character class is represented, and the result is shuffled without bias.
    """
    pass


@cli.command()
@click.option('--length', '-l', default=16, type=int, help='Password length (clamped to 4-128)')
@click.option('--count', '-c', default=1, type=click.IntRange(min=1), help='Number of passwords to generate')
@click.option('--no-lowercase', is_flag=True, help='Exclude lowercase letters')
@click.option('--no-uppercase', is_flag=True, help='Exclude uppercase letters')
@click.option('--no-digits', is_flag=True, help='Exclude numbers')
@click.option('--no-symbols', is_flag=True, help='Exclude symbols')
@click.option('--exclude-similar', '-x', is_flag=True, help='Exclude look-alike characters (i,l,o,I,L,O,0,1)')
@click.option('--table', '-t', is_flag=True, help='Show passwords in a table with character counts')
@click.option('--copy', is_flag=True, help='Copy the last password to the clipboard')
@click.option('--timeout', default=30, type=click.IntRange(min=0),
              help='Clear clipboard after N seconds (0 = don\'t clear)')
def generate(length, count, no_lowercase, no_uppercase, no_digits, no_symbols,
             exclude_similar, table, copy, timeout):
    """Generate secure passwords"""
    config = normalize_config({
        'length': length,
        'includeLowercase': not no_lowercase,
        'includeUppercase': not no_uppercase,
        'includeNumbers': not no_digits,
        'includeSymbols': not no_symbols,
        'excludeSimilar': exclude_similar,
    })

    if config.length != length:
        click.echo(f"⚠️  Length {length} is out of range, using {config.length}", err=True)

    try:
        passwords = [generate_password(config) for _ in range(count)]
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    if table:
        headers = ['#', 'Password', 'Lower', 'Upper', 'Digits', 'Symbols']
        rows = [[i, pw] + character_counts(pw) for i, pw in enumerate(passwords, 1)]
        click.echo(tabulate(rows, headers=headers, tablefmt='simple_grid'))
    elif count == 1:
        click.echo(click.style(passwords[0], fg='green', bold=True))
    else:
        for i, password in enumerate(passwords, 1):
            click.echo(f"{i}. {click.style(password, fg='green', bold=True)}")

    if copy:
        original_clipboard = secure_clipboard_copy(passwords[-1])
        if original_clipboard is None:
            click.echo("⚠️  No clipboard mechanism available on this system", err=True)
            return

        click.echo("✅ Password copied to clipboard", err=True)
        if timeout > 0:
            click.echo(f"⏱️  Clipboard will auto-clear in {timeout} seconds (Ctrl+C to clear now)...", err=True)
            restore_clipboard(passwords[-1], original_clipboard, timeout)


@cli.command()
@click.option('--host', help='Interface to bind (default: $SECUREPASS_HOST or 127.0.0.1)')
@click.option('--port', '-p', type=click.IntRange(1, 65535), help='Port to listen on (default: $PORT or 3000)')
@click.option('--static-dir', type=click.Path(exists=True, file_okay=False), help='Directory of static assets')
@click.option('--log-level', default='info', type=click.Choice(LOG_LEVELS), help='Logging level')
def serve(host, port, static_dir, log_level):
    """Run the password API and web client"""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings().override(host=host, port=port, static_dir=static_dir)

    click.echo(f"🔐 SecurePass running on http://{settings.host}:{settings.port}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=log_level)


@cli.command()
def version():
    """Show SecurePass version and info"""
    click.echo("\n🔐 SecurePass Password Generator")
    click.echo(f"Version: {__version__}")
    click.echo("License: MIT")
    click.echo("\nFor help: securepass --help")


# Entry point
if __name__ == '__main__':
    cli()
