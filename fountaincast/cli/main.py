"""CLI entry point for fountaincast.

Commands:
    fountaincast encode      — Write a message as a stream of hex-encoded parts
    fountaincast decode      — Rebuild a message from scanned parts
    fountaincast inspect     — Describe each part in a stream
    fountaincast simulate    — Measure recovery over a simulated lossy channel
    fountaincast init-config — Write the current settings to the config file
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import BinaryIO, Iterator, TextIO

import click
import numpy as np

from ..fountain.decoder import DEFAULT_MAX_SEQ_LEN
from ..fountain.errors import FountainError, MalformedPart
from ..protocol.framing import PartAssembler, PartFramer
from ..protocol.lossy import LossyChannel
from ..protocol.part import Part
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config, save_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _log_level(ctx: click.Context) -> str:
    config: AppConfig = ctx.obj["config"]
    return "DEBUG" if ctx.obj.get("verbose") else config.log_level


def _read_frames(lines: TextIO, logger: logging.Logger) -> Iterator[bytes]:
    """Yield wire frames from hex lines, skipping blanks and comments."""
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            yield bytes.fromhex(line)
        except ValueError:
            logger.warning("Line %d is not hex, skipped", lineno)


@click.group()
@click.option("--config", "-c", type=click.Path(), default=None,
              help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Enable verbose/debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """fountaincast: rateless fountain coding for one-way frame streams."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    try:
        ctx.obj["config"] = load_config(config)
    except ValueError as exc:
        raise click.ClickException(f"invalid config: {exc}") from exc
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("input_file", type=click.File("rb"))
@click.option("--output", "-o", type=click.File("w"), default="-",
              help="Where to write parts (default: stdout)")
@click.option("--count", "-n", type=int, default=None,
              help="Number of parts to write (default: from redundancy)")
@click.option("--redundancy", "-r", type=float, default=None,
              help="Extra parts per fragment (default: 0.5)")
@click.option("--max-fragment-len", type=int, default=None,
              help="Largest payload per part in bytes (default: 200)")
@click.option("--min-fragment-len", type=int, default=None,
              help="Smallest payload per part in bytes (default: 10)")
@click.option("--first-seq-num", type=int, default=None,
              help="Counter value before the first part (default: 0)")
@click.pass_context
def encode(ctx: click.Context, input_file: BinaryIO, output: TextIO,
           count: int | None, redundancy: float | None,
           max_fragment_len: int | None, min_fragment_len: int | None,
           first_seq_num: int | None) -> None:
    """Encode INPUT_FILE into hex-encoded parts, one per line.

    The first lines are the plain fragments; the rest are mixed parts that
    let a receiver recover from missed frames.
    """
    config: AppConfig = ctx.obj["config"]
    if redundancy is not None:
        config.redundancy = redundancy
    if max_fragment_len is not None:
        config.max_fragment_len = max_fragment_len
    if min_fragment_len is not None:
        config.min_fragment_len = min_fragment_len
    if first_seq_num is not None:
        config.first_seq_num = first_seq_num

    _setup_logging(_log_level(ctx))
    logger = logging.getLogger("fountaincast.encode")

    data = input_file.read()
    try:
        framer = PartFramer(data, config.to_framing_config())
    except FountainError as exc:
        raise click.ClickException(str(exc)) from exc

    if count is None:
        count = framer.frame_budget()
    for _ in range(count):
        output.write(framer.next_frame().hex() + "\n")

    logger.info("Encoded %d bytes as %d fragment(s) of %d bytes, wrote %d part(s)",
                len(data), framer.seq_len, framer.encoder.fragment_len, count)


@cli.command()
@click.argument("input_file", type=click.File("r"))
@click.option("--output", "-o", type=click.File("wb"), default="-",
              help="Where to write the message (default: stdout)")
@click.pass_context
def decode(ctx: click.Context, input_file: TextIO, output: BinaryIO) -> None:
    """Rebuild a message from the hex-encoded parts in INPUT_FILE.

    Parts may be in any order, repeated, or missing, as long as enough of
    them are present.
    """
    _setup_logging(_log_level(ctx))
    logger = logging.getLogger("fountaincast.decode")

    assembler = PartAssembler()
    message = None
    frames_read = 0
    for frame in _read_frames(input_file, logger):
        frames_read += 1
        message = assembler.add_frame(frame)
        if message is not None:
            break

    if message is None:
        raise click.ClickException(
            f"not enough parts to rebuild the message ({frames_read} read, "
            f"{assembler.rejected_frames} rejected)")

    output.write(message)
    logger.info("Decoded %d bytes from %d part(s)", len(message), frames_read)


@cli.command()
@click.argument("input_file", type=click.File("r"))
@click.pass_context
def inspect(ctx: click.Context, input_file: TextIO) -> None:
    """Describe each hex-encoded part in INPUT_FILE."""
    _setup_logging(_log_level(ctx))
    logger = logging.getLogger("fountaincast.inspect")

    for frame in _read_frames(input_file, logger):
        try:
            part = Part.from_wire(frame)
        except MalformedPart as exc:
            click.echo(f"malformed: {exc}")
            continue
        click.echo(part.description())
        if part.seq_len > DEFAULT_MAX_SEQ_LEN:
            click.echo(f"  seq_len over limit {DEFAULT_MAX_SEQ_LEN}, fragments not listed")
            continue
        kind = "pure" if part.is_pure else "mixed"
        click.echo(f"  {kind}, fragments {list(part.indexes)}")


@cli.command()
@click.option("--size", "-s", type=int, default=4096,
              help="Random message size in bytes")
@click.option("--loss-rate", type=float, default=None,
              help="Probability that a burst of lost frames starts")
@click.option("--burst-len", type=int, default=None,
              help="Longest burst of consecutive lost frames")
@click.option("--seed", type=int, default=None,
              help="Seed for the message and the channel")
@click.option("--limit", type=float, default=10.0,
              help="Give up after this many frames per fragment")
@click.pass_context
def simulate(ctx: click.Context, size: int, loss_rate: float | None,
             burst_len: int | None, seed: int | None, limit: float) -> None:
    """Send a random message over a simulated lossy channel."""
    config: AppConfig = ctx.obj["config"]
    if loss_rate is not None:
        config.loss_rate = loss_rate
    if burst_len is not None:
        config.burst_len = burst_len
    if seed is not None:
        config.seed = seed
    _setup_logging(_log_level(ctx))

    rng = np.random.RandomState(config.seed)
    data = rng.bytes(size)
    try:
        framer = PartFramer(data, config.to_framing_config())
    except FountainError as exc:
        raise click.ClickException(str(exc)) from exc

    channel = LossyChannel(config.to_loss_config())
    assembler = PartAssembler()

    max_frames = max(framer.seq_len, int(framer.seq_len * limit))
    click.echo(f"Simulating {size} bytes as {framer.seq_len} fragment(s) of "
               f"{framer.encoder.fragment_len} bytes, "
               f"loss_rate={config.loss_rate}, burst_len={config.burst_len}")

    start_time = time.monotonic()
    frames = framer.frames(max_frames)
    delivered = channel.transmit(frames)

    message = None
    used = 0
    for frame in delivered:
        used += 1
        message = assembler.add_frame(frame)
        if message is not None:
            break
    elapsed = time.monotonic() - start_time

    click.echo("\nResults:")
    click.echo(f"  Frames displayed: {len(frames)}")
    click.echo(f"  Frames lost: {channel.dropped}")
    click.echo(f"  Frames scanned: {used}")
    click.echo(f"  Elapsed: {elapsed * 1000:.1f} ms")
    if message is None:
        raise click.ClickException(
            f"message not recovered after {len(frames)} frames")
    if message != data:
        raise click.ClickException("recovered message differs from original")
    click.echo(f"  Overhead: {used / framer.seq_len:.2f} scanned frames per fragment")


@cli.command("init-config")
@click.option("--force", "-f", is_flag=True, default=False,
              help="Overwrite an existing config file")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Write the current settings to the config file."""
    path = Path(ctx.obj["config_path"] or DEFAULT_CONFIG_PATH)
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force)")
    save_config(ctx.obj["config"], path)
    click.echo(f"Configuration saved to {path}")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
