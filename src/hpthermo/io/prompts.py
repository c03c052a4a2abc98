from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, TextIO, TypeVar

from hpthermo.science.constants import MAX_STATES, MAX_TEMPERATURE_K_LITERAL, MIN_TEMPERATURE_K_LITERAL
from hpthermo.science.numeric import NumericBackend
from hpthermo.science.parameters import ParameterRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ordinal(n: int) -> str:
    """Return ``n`` with its English ordinal suffix: 1st, 2nd, 3rd, 4th, 11th, 21st."""
    if n % 100 in (11, 12, 13):
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def read_value(stream: TextIO, parse: Callable[[str], T]) -> tuple[bool, T | None]:
    """Read one line and parse it; the flag is False when parsing fails."""
    line = stream.readline()
    if line == "":
        raise EOFError("Input ended before a valid value was entered.")
    try:
        return True, parse(line.strip())
    except (ValueError, ArithmeticError):
        return False, None


def getter_loop(
    stream_in: TextIO,
    stream_out: TextIO,
    parse: Callable[[str], T],
    error_message: str,
    accept: Callable[[T], bool] | None = None,
) -> T:
    """Prompt until a line parses (and passes ``accept``), printing ``error_message`` on every rejection."""
    stream_out.flush()
    while True:
        ok, value = read_value(stream_in, parse)
        if ok and (accept is None or accept(value)):  # type: ignore[arg-type]
            return value  # type: ignore[return-value]
        stream_out.write(error_message)
        stream_out.flush()


def ranged_getter_loop(
    stream_in: TextIO,
    stream_out: TextIO,
    parse: Callable[[str], T],
    minimum: Any,
    maximum: Any,
    error_message: str,
) -> T:
    """Like ``getter_loop`` but only accepts values in ``[minimum, maximum]``."""
    return getter_loop(
        stream_in,
        stream_out,
        parse,
        error_message,
        accept=lambda value: minimum <= value <= maximum,
    )


def finite_number_parser(backend: NumericBackend) -> Callable[[str], Any]:
    def parse(text: str) -> Any:
        value = backend.convert(text)
        if not backend.is_finite(value):
            raise ValueError(f"{text!r} is not a finite number.")
        return value

    return parse


def ask_yes_no(stream_in: TextIO, stream_out: TextIO, question: str) -> bool:
    stream_out.write(question)
    stream_out.flush()
    answer = stream_in.readline().strip().lower()
    return answer.startswith("y")


def prompt_parameter_record(stream_in: TextIO, stream_out: TextIO, backend: NumericBackend) -> ParameterRecord:
    """Ask for every system parameter on ``stream_in``, re-asking until each answer is valid."""
    number = finite_number_parser(backend)
    lowest = backend.convert(MIN_TEMPERATURE_K_LITERAL)
    highest = backend.convert(MAX_TEMPERATURE_K_LITERAL)

    stream_out.write("\nEnter a filename to save the results (CSV format, will be overwritten): ")
    stream_out.flush()
    filename = getter_loop(
        stream_in,
        stream_out,
        lambda text: text if text else _reject("empty filename"),
        "Please enter a non-empty filename: ",
    )

    stream_out.write("What is the minimum temperature to calculate (in K)?: ")
    t_min = ranged_getter_loop(
        stream_in, stream_out, number, lowest, highest,
        "Please enter a finite, positive temperature in Kelvins: ",
    )

    stream_out.write("What is the maximum temperature to calculate (in K)?: ")
    t_max = getter_loop(
        stream_in, stream_out, number,
        "Please enter a finite temperature greater than the minimum temperature: ",
        accept=lambda value: t_min < value <= highest,
    )

    stream_out.write("How many Kelvins should the program step for each sample? ")
    step = getter_loop(
        stream_in, stream_out, number,
        "Please enter a finite, positive value less than the temperature range: ",
        accept=lambda value: 0 < value < t_max - t_min,
    )

    stream_out.write("How many states does the partition function have? ")
    states = ranged_getter_loop(
        stream_in, stream_out, int, 1, MAX_STATES,
        f"Please enter a positive integer no larger than {MAX_STATES}: ",
    )

    energies = []
    for i in range(1, states + 1):
        stream_out.write(f"Enter the energy of the {ordinal(i)} state in eV: ")
        energies.append(getter_loop(stream_in, stream_out, number, "Please enter a numerical value: "))

    potentials = None
    if ask_yes_no(stream_in, stream_out, "Do the states have chemical potentials? (y/n) "):
        potentials = []
        for i in range(1, states + 1):
            stream_out.write(f"Enter the chemical potential of the {ordinal(i)} state in eV: ")
            potentials.append(getter_loop(stream_in, stream_out, number, "Please enter a numerical value: "))

    stream_out.write("Please wait . . .\n")
    stream_out.flush()
    return ParameterRecord(
        output_path=filename,
        energies_eV=tuple(energies),
        T_min=t_min,
        T_max=t_max,
        step=step,
        chemical_potentials_eV=None if potentials is None else tuple(potentials),
    )


def acquire_interactively(
    stream_in: TextIO,
    stream_out: TextIO,
    backend: NumericBackend,
    config_path: Path | None = None,
) -> ParameterRecord:
    """
    Offer an existing config file first, then fall back to prompting.

    A config that cannot be read is reported on ``stream_out`` and the user is
    prompted instead.
    """
    if config_path is not None and Path(config_path).exists():
        if ask_yes_no(stream_in, stream_out, "\nConfiguration file found; use data? (y/n) "):
            from hpthermo.io.config import load_parameter_record

            try:
                return load_parameter_record(Path(config_path))
            except (OSError, ValueError) as e:
                logger.debug("Config file %s rejected: %s", config_path, e)
                stream_out.write("Error reading configuration file.\n\n")

    return prompt_parameter_record(stream_in, stream_out, backend)


def prompt_new_path(stream_in: TextIO, stream_out: TextIO, attempt: int) -> str | None:
    """Ask for another output path after a failed save; an empty answer gives up."""
    stream_out.write(f"File error! Enter another filename (attempt {attempt}, empty to give up): ")
    stream_out.flush()
    answer = stream_in.readline().strip()
    return answer or None


def _reject(reason: str) -> Any:
    raise ValueError(reason)
