from __future__ import annotations

import argparse
import importlib.util
import logging
import platform
import sys
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable

from hpthermo import __version__
from hpthermo.io.config import load_parameter_record, parse_number_list, record_from_values
from hpthermo.io.prompts import acquire_interactively, prompt_new_path
from hpthermo.payloads import build_provenance
from hpthermo.progress import ProgressBar
from hpthermo.science.hpmath import exp_series, factorial, ln_newton, tetrate
from hpthermo.science.numeric import BACKENDS, DEFAULT_BACKEND, DEFAULT_PRECISION, NumericBackend, get_backend
from hpthermo.science.parameters import ParameterRecord
from hpthermo.services.manager import SystemManager
from hpthermo.services.sweep import sweep_run
from hpthermo.validation import ValidationError

LOG_FORMAT = "%(message)s"
LOG_LEVELS = {
    "quiet": logging.WARNING,
    "default": logging.INFO,
    "verbose": logging.DEBUG,
}
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_CSV = "partition_function.csv"

COMMON_FLOW_EXAMPLES = """Examples:
  # High-precision primitives
  hpthermo exp 1 --precision 60
  hpthermo tetrate 2 4

  # Two-level system swept from 100 K to 300 K in 50 K steps
  hpthermo sweep --energies 0,0.05 --T-min 100 --T-max 300 --step 50 --out two_level.csv --summary

  # Answer parameter prompts one at a time (offers config.txt first)
  hpthermo sweep --interactive --source config.txt

  # Config-driven run
  hpthermo --config examples/two_level/run_config.toml
"""


def configure_logging(verbose: bool, quiet: bool) -> int:
    if verbose and quiet:
        raise SystemExit("--verbose and --quiet cannot be used together")

    if verbose:
        level = LOG_LEVELS["verbose"]
    elif quiet:
        level = LOG_LEVELS["quiet"]
    else:
        level = LOG_LEVELS["default"]

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)
    return level


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def add_numeric_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--backend",
        choices=sorted(BACKENDS),
        default=DEFAULT_BACKEND,
        help="High-precision number type.",
    )
    parser.add_argument(
        "--precision",
        type=int,
        default=DEFAULT_PRECISION,
        help="Working precision in significant decimal digits.",
    )


def build_factorial_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser("factorial", help="Compute n! exactly.")
    parser.add_argument("n", type=int, help="Nonnegative integer.")
    add_numeric_args(parser)
    parser.add_argument("--digits", type=int, default=None, help="Significant digits to print (default: precision).")
    return parser


def build_exp_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser("exp", help="Compute e**x by Maclaurin series.")
    parser.add_argument("x", help="Exponent.")
    add_numeric_args(parser)
    parser.add_argument("--digits", type=int, default=None, help="Significant digits to print (default: precision).")
    return parser


def build_ln_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser("ln", help="Compute the natural logarithm by Newton iteration.")
    parser.add_argument("x", help="Positive argument.")
    add_numeric_args(parser)
    parser.add_argument("--digits", type=int, default=None, help="Significant digits to print (default: precision).")
    return parser


def build_tetrate_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser("tetrate", help="Compute the power tower base^^hyperpower.")
    parser.add_argument("base", help="Tower base.")
    parser.add_argument("hyperpower", type=int, help="Tower height; negative heights take repeated roots.")
    add_numeric_args(parser)
    parser.add_argument("--digits", type=int, default=None, help="Significant digits to print (default: precision).")
    return parser


def build_sweep_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "sweep",
        help="Compute the partition function and state probabilities across a temperature range.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--energies", default=None, help="Comma-separated state energies in eV.")
    source.add_argument(
        "--source",
        default=None,
        help="TOML run config, energies CSV or plain-text config providing the system.",
    )
    source.add_argument(
        "--interactive",
        action="store_true",
        help="Prompt for every parameter (offers --source first when it exists).",
    )
    parser.add_argument("--potentials", default=None, help="Comma-separated chemical potentials in eV.")
    parser.add_argument("--energy-col", default="energy_eV", help="Energy column name for CSV sources.")
    parser.add_argument("--potential-col", default=None, help="Chemical potential column name for CSV sources.")
    # Kept as text so every digit reaches the high-precision backend.
    parser.add_argument("--T-min", default=None, dest="T_min", help="Lowest temperature in K.")
    parser.add_argument("--T-max", default=None, dest="T_max", help="Upper temperature bound in K.")
    parser.add_argument("--step", default=None, help="Temperature step in K.")
    parser.add_argument("--out", default=None, help=f"Output CSV path (default: source's, else {DEFAULT_OUTPUT_CSV}).")
    add_numeric_args(parser)
    parser.add_argument("--summary", action="store_true", help="Also write <out>_summary.json.")
    parser.add_argument(
        "--plot",
        nargs="?",
        const="",
        default=None,
        help="Write a PNG of P_i(T) (default path: <out>.png; requires hpthermo[plot]).",
    )
    parser.add_argument("--no-units-note", action="store_true", help="Omit the leading units line from the CSV.")
    parser.add_argument("--progress", action="store_true", help="Draw a progress bar while sweeping.")
    return parser


def build_plot_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser("plot", help="Plot state probabilities from a sweep CSV.")
    parser.add_argument("--csv", required=True, help="Sweep CSV written by 'hpthermo sweep'.")
    parser.add_argument("--out", default=None, help="PNG path (default: CSV path with .png suffix).")
    return parser


def build_doctor_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    return subparsers.add_parser("doctor", help="Print environment diagnostics for reproducibility.")


def _digits(args: argparse.Namespace) -> int:
    digits = args.precision if args.digits is None else args.digits
    if digits < 1:
        raise SystemExit("--digits must be >= 1")
    return digits


def _backend_or_exit(args: argparse.Namespace) -> NumericBackend:
    if args.precision < 1:
        raise SystemExit("--precision must be >= 1")
    return get_backend(args.backend)


def _convert_or_exit(backend: NumericBackend, text: str, name: str) -> Any:
    try:
        value = backend.convert(text)
    except ValueError as e:
        raise SystemExit(f"Input validation error: {name}: {e}") from e
    if not backend.is_finite(value):
        raise SystemExit(f"Input validation error: {name} must be finite")
    return value


def _report_series(label: str, result: Any, backend: NumericBackend, digits: int) -> None:
    if not result.converged:
        logger.warning("%s did not converge after %d iterations; showing the last value.", label, result.iterations)
    logger.debug("%s: iterations=%d converged=%s", label, result.iterations, result.converged)
    logger.info("%s", backend.format(result.value, digits))


def handle_factorial(args: argparse.Namespace) -> None:
    if args.n < 0:
        raise SystemExit("n must be >= 0")
    backend = _backend_or_exit(args)
    digits = _digits(args)
    with backend.working_precision(args.precision):
        value = factorial(backend.convert(args.n))
        logger.info("%s", backend.format(value, digits))


def handle_exp(args: argparse.Namespace) -> None:
    backend = _backend_or_exit(args)
    digits = _digits(args)
    with backend.working_precision(args.precision):
        x = _convert_or_exit(backend, args.x, "x")
        _report_series(f"exp({args.x})", exp_series(x), backend, digits)


def handle_ln(args: argparse.Namespace) -> None:
    backend = _backend_or_exit(args)
    digits = _digits(args)
    with backend.working_precision(args.precision):
        x = _convert_or_exit(backend, args.x, "x")
        if not x > backend.convert(0):
            raise SystemExit("Input validation error: ln is only defined for x > 0")
        _report_series(f"ln({args.x})", ln_newton(x), backend, digits)


def handle_tetrate(args: argparse.Namespace) -> None:
    backend = _backend_or_exit(args)
    digits = _digits(args)
    with backend.working_precision(args.precision):
        base = _convert_or_exit(backend, args.base, "base")
        try:
            value = tetrate(base, args.hyperpower)
        except (ArithmeticError, ValueError) as e:
            raise SystemExit(f"Tetration error: {e}") from e
        logger.info("%s", backend.format(value, digits))


def _require_sweep_bounds(args: argparse.Namespace) -> None:
    if args.T_min is None or args.T_max is None or args.step is None:
        raise SystemExit("This source needs --T-min, --T-max and --step together")


def _sweep_record(args: argparse.Namespace, backend: NumericBackend) -> ParameterRecord:
    if args.interactive:
        config_path = None if args.source is None else Path(args.source)
        try:
            with backend.working_precision(args.precision):
                return acquire_interactively(sys.stdin, sys.stdout, backend, config_path=config_path)
        except EOFError as e:
            raise SystemExit(f"Input ended: {e}") from e

    if args.energies is not None:
        _require_sweep_bounds(args)
        potentials = None if args.potentials is None else parse_number_list(args.potentials)
        return record_from_values(
            parse_number_list(args.energies),
            T_min=args.T_min,
            T_max=args.T_max,
            step=args.step,
            output_path=args.out or DEFAULT_OUTPUT_CSV,
            chemical_potentials_eV=potentials,
        )

    if args.source is not None:
        source = Path(args.source)
        if source.suffix.lower() == ".csv":
            _require_sweep_bounds(args)
        return load_parameter_record(
            source,
            energy_col=args.energy_col,
            potential_col=args.potential_col,
            output_path=args.out,
            T_min=args.T_min,
            T_max=args.T_max,
            step=args.step,
        )

    raise SystemExit("Provide one of --energies, --source or --interactive")


def handle_sweep(args: argparse.Namespace) -> None:
    backend = _backend_or_exit(args)
    if args.potentials is not None and args.energies is None:
        raise SystemExit("--potentials is only used together with --energies")

    try:
        record = _sweep_record(args, backend)
        manager = SystemManager(backend=backend, precision=args.precision)
        manager.initialize(record)
    except FileNotFoundError as e:
        raise SystemExit(f"Input file not found: {e}") from e
    except ValueError as e:
        raise SystemExit(f"Input validation error: {e}") from e

    csv_path = Path(args.out or record.output_path)
    if args.plot is None:
        plot_path = None
    else:
        plot_path = Path(args.plot) if args.plot else csv_path.with_suffix(".png")

    show_progress = args.progress or args.interactive
    bar = ProgressBar() if show_progress else None
    if bar is not None:
        bar.initialize(manager.n_samples)
    try:
        manager.run_sweep(progress=bar)
    except ArithmeticError as e:
        raise SystemExit(f"Numeric range error: {e!r}") from e
    finally:
        if bar is not None:
            bar.end()

    next_path: Callable[[int], str | None] | None = None
    if args.interactive:

        def next_path(attempt: int) -> str | None:
            return prompt_new_path(sys.stdin, sys.stdout, attempt)

    cli_args = {
        "command": "sweep",
        "source": args.source,
        "energies": args.energies,
        "potentials": args.potentials,
        "T_min": args.T_min,
        "T_max": args.T_max,
        "step": args.step,
        "backend": backend.name,
        "precision": args.precision,
    }
    input_hash = None
    if args.source is not None and Path(args.source).is_file():
        input_hash = sha256(Path(args.source).read_bytes()).hexdigest()
    provenance = build_provenance(cli_args=cli_args, input_hash=input_hash, package_version=__version__)

    try:
        artifacts = sweep_run(
            manager,
            csv_path=csv_path,
            write_summary=args.summary,
            plot_path=plot_path,
            include_units_note=not args.no_units_note,
            created_at=_iso_utc_now(),
            provenance=provenance,
            next_path=next_path,
        )
    except ValidationError as e:
        raise SystemExit(f"Output validation failed: first_error_path={e.path}, detail={e.message}") from e
    except RuntimeError as e:
        raise SystemExit(f"Plot error: {e}") from e
    except OSError as e:
        raise SystemExit(f"Output error: {e}") from e

    summary = manager.summary()
    if not summary.all_converged:
        logger.warning("Some Boltzmann weights hit the series term limit; see the summary for details.")
    logger.debug(
        "Sweep done: samples=%d states=%d max|sum(P)-1|=%.3e",
        summary.num_samples,
        summary.states,
        summary.max_probability_error,
    )
    logger.debug("Outputs: %s", ", ".join(artifacts.produced_outputs))


def handle_plot(args: argparse.Namespace) -> None:
    from hpthermo.io.results_csv import LEADING_COLUMNS, read_partition_csv

    csv_path = Path(args.csv)
    out_png = Path(args.out) if args.out else csv_path.with_suffix(".png")
    try:
        df = read_partition_csv(csv_path)
    except FileNotFoundError as e:
        raise SystemExit(f"Input file not found: {e}") from e
    except ValueError as e:
        raise SystemExit(f"Input validation error: {e}") from e

    probability_columns = [column for column in df.columns if column not in LEADING_COLUMNS]
    if not probability_columns:
        raise SystemExit(f"Input validation error: {csv_path} has no probability columns")

    try:
        from hpthermo.viz.partition import plot_probabilities_vs_T

        plot_probabilities_vs_T(
            df[LEADING_COLUMNS[0]].to_numpy(dtype=float),
            df[probability_columns].to_numpy(dtype=float),
            out_png,
            labels=[column.replace("(tau)", "") for column in probability_columns],
        )
    except (ModuleNotFoundError, RuntimeError) as e:
        raise SystemExit(
            "Plotting requires matplotlib. Install with:\n"
            "  python -m pip install -e '.[plot]'\n"
        ) from e
    logger.info("Wrote: %s", out_png)


def handle_doctor(args: argparse.Namespace) -> None:
    logger.info("hpthermo doctor")
    logger.info("%s", "-" * 60)

    logger.info("python_executable : %s", sys.executable)
    logger.info("python_version    : %s", sys.version.split()[0])
    logger.info("platform          : %s", platform.platform())
    logger.info("cwd               : %s", Path.cwd())

    import hpthermo

    logger.info("hpthermo_package  : %s", Path(hpthermo.__file__).resolve())
    logger.info("hpthermo_version  : %s", __version__)
    logger.info("backends          : %s", ", ".join(sorted(BACKENDS)))
    logger.info("default_precision : %d", DEFAULT_PRECISION)

    for module in ("mpmath", "numpy", "pandas", "matplotlib"):
        spec = importlib.util.find_spec(module)
        logger.info("%-18s: %s", module, "available" if spec is not None else "missing")

    logger.info("logging_level     : %s", logging.getLevelName(logging.getLogger().getEffectiveLevel()))
    logger.info("%s", "-" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hpthermo",
        description="Arbitrary-precision partition functions and numeric primitives.",
        epilog=COMMON_FLOW_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Run a sweep from a TOML config file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-essential output.",
    )
    subparsers = parser.add_subparsers(dest="command")

    build_factorial_parser(subparsers)
    build_exp_parser(subparsers)
    build_ln_parser(subparsers)
    build_tetrate_parser(subparsers)
    build_sweep_parser(subparsers)
    build_plot_parser(subparsers)
    build_doctor_parser(subparsers)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.config is not None:
        from hpthermo.run_config import run_from_config

        config_path = Path(args.config)
        if not config_path.exists():
            raise SystemExit(f"Config file not found: {config_path}")
        try:
            run_from_config(config_path)
        except ValidationError as e:
            raise SystemExit(
                f"Output validation failed: first_error_path={e.path}, detail={e.message}"
            ) from e
        except ValueError as e:
            raise SystemExit(f"Config validation error: {e}") from e
        except ArithmeticError as e:
            raise SystemExit(f"Numeric range error: {e!r}") from e
        except RuntimeError as e:
            raise SystemExit(f"Plot error: {e}") from e
        except OSError as e:
            raise SystemExit(f"Output error: {e}") from e
        return

    if args.command == "factorial":
        handle_factorial(args)
    elif args.command == "exp":
        handle_exp(args)
    elif args.command == "ln":
        handle_ln(args)
    elif args.command == "tetrate":
        handle_tetrate(args)
    elif args.command == "sweep":
        handle_sweep(args)
    elif args.command == "plot":
        handle_plot(args)
    elif args.command == "doctor":
        handle_doctor(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
