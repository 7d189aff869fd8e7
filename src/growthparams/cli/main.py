# src/growthparams/cli/main.py
import argparse
import logging

import matplotlib
matplotlib.use("Agg")  # figures are only written to files

from growthparams.cli.fit_cli import add_fit_subcommand
from growthparams.cli.synth_cli import add_synth_subcommand


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="growthparams",
        description="Per-plant logistic growth fits and genotype comparison of the fitted parameters",
    )
    parser.add_argument("--loglevel", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    add_fit_subcommand(sub)
    add_synth_subcommand(sub)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.loglevel), format="%(levelname)s: %(message)s")
    return args._fn(args)  # each subcommand sets a handler


if __name__ == "__main__":
    raise SystemExit(main())
