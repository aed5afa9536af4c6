from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import get_args

from dicecalc.errors import CapacityError, ParseError
from dicecalc.log import setup_logging
from dicecalc.warhammer.form import CalculatorForm
from dicecalc.warhammer.profile import TARGETS, WEAPONS
from dicecalc.warhammer.simulation import SimulationConfig, simulate


def _option(name: str) -> str:
    return "--" + name.replace("_", "-")


def _positive_int(text: str) -> int:
    try:
        n = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{text}'")
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dicecalc", description="Warhammer 40k attack calculator")
    p.add_argument("--weapon", choices=sorted(WEAPONS), help="use an example attacker instead of the attacker options")
    p.add_argument("--target", choices=sorted(TARGETS), help="use an example defender instead of the defender options")
    p.add_argument("--iterations", type=_positive_int, default=SimulationConfig.iterations)
    p.add_argument("--seed", type=int)
    p.add_argument("-v", "--verbose", action="count", default=0)

    fields = p.add_argument_group("profile")
    for name, info in CalculatorForm.model_fields.items():
        choices = get_args(info.annotation)
        if info.annotation is bool:
            fields.add_argument(_option(name), dest=name, action="store_true")
        elif choices:
            fields.add_argument(_option(name), dest=name, choices=choices, default=info.default)
        else:
            fields.add_argument(_option(name), dest=name, default=info.default, help=info.description)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.WARNING - 10 * min(args.verbose, 2))

    form = CalculatorForm(**{name: getattr(args, name) for name in CalculatorForm.model_fields})
    try:
        attacker = WEAPONS[args.weapon] if args.weapon else form.build_attacker()
        defender = TARGETS[args.target] if args.target else form.build_defender()
    except CapacityError as e:
        print(e)
        return 0
    except ParseError as e:
        print(f"{e.field}: {e}", file=sys.stderr)
        return 2

    rng = random.Random(args.seed)
    stats = simulate(attacker, defender, args.iterations, rng)
    print(stats)
    print()
    print("\n".join(stats.sample_lines()))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
