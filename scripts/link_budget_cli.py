from __future__ import annotations

import argparse
import os
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from eme_link_budget.budget.orchestrator import LinkBudget
from eme_link_budget.budget.report import format_report
from eme_link_budget.link_core.bands import frequency_band
from eme_link_budget.link_core.config_loader import (
    dump_effective_config,
    load_run_config,
    parameters_from_config,
    sky_map_candidates,
)
from eme_link_budget.sky.fits_map import SkyMapIndex


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="link_budget_cli",
        description="Compute an EME (moonbounce) link budget.",
    )
    p.add_argument("--run", help="Run name, resolves to config/runs/<name>.toml")
    p.add_argument("--run-config", help="Explicit run file path (TOML)")
    p.add_argument(
        "--set",
        action="append",
        default=[],
        help="Override config key=value (repeatable).",
    )
    p.add_argument(
        "--dump-effective-config",
        action="store_true",
        help="Print final merged config and exit.",
    )
    p.add_argument(
        "--log-dir",
        default="logs",
        help="Directory where the run log will be created.",
    )
    return p


def _init_logger(project_root: str, log_dir: str) -> Tuple[str, Any]:
    os.makedirs(os.path.join(project_root, log_dir), exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")
    path = os.path.join(project_root, log_dir, f"run_{stamp}.log")

    def _log(msg: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(msg.rstrip() + "\n")

    return path, _log


def _log_header(log, project_root: str, paths: Dict[str, Any], cfg: Dict[str, Any]):
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    log(f"[{now}] Run started")
    log(f"Project root: {project_root}")
    for key, label in (
        ("run_path", "Run config"),
        ("site_path", "Site config"),
        ("system_path", "System config"),
    ):
        if paths.get(key):
            log(f"{label}: {os.path.relpath(paths[key], project_root)}")
    log("")
    log("----- Effective configuration -----")
    log(dump_effective_config(cfg).rstrip())
    log("-----------------------------------")
    log("")


def _load_sky_map(sky: SkyMapIndex, cfg: Dict[str, Any], project_root: str, log) -> None:
    for path in sky_map_candidates(cfg, project_root):
        if sky.load_fits(path):
            msg = f"Sky map: {os.path.relpath(path, project_root)} (nside={sky.nside})"
            print(msg); log(msg)
            return
        log(f"Sky map not usable: {path}")
    msg = "Sky map: none loaded, using analytic sky model"
    print(msg); log(msg)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    project_root = os.getcwd()
    try:
        cfg, paths = load_run_config(
            project_root=project_root,
            run_name=args.run,
            run_path=args.run_config,
            set_overrides=args.set,
        )
    except (ValueError, FileNotFoundError) as e:
        print(f"ERROR: {e}")
        return 1

    if args.dump_effective_config:
        print("----- Effective configuration -----")
        print(dump_effective_config(cfg).rstrip())
        print("-----------------------------------")
        return 0

    log_path, log = _init_logger(project_root, args.log_dir)
    _log_header(log, project_root, paths, cfg)
    print(f"Log file: {os.path.relpath(log_path, project_root)}")

    try:
        params = parameters_from_config(cfg)
    except ValueError as e:
        print(f"ERROR: {e}"); log(f"ERROR: {e}")
        return 1

    msg = (
        f"Frequency {params.frequency_mhz:g} MHz ({frequency_band(params.frequency_mhz)}), "
        f"ephemeris: {params.moon_ephemeris.ephemeris_source}, "
        f"scattering model: {params.scattering_model}"
    )
    print(msg); log(msg)

    with SkyMapIndex() as sky:
        _load_sky_map(sky, cfg, project_root, log)
        budget = LinkBudget(params, sky_map=sky)
        results = budget.calculate()
        report = format_report(params, results, sky_map_active=budget.sky_map_active)

    print(report)
    log(report)

    if not results.calculation_success:
        msg = f"ERROR: {results.error_message.strip()}"
        print(msg); log(msg)
        return 1

    for stage, value in (
        ("Total path loss", f"{results.path_loss.total_path_loss_db:.2f} dB"),
        ("System noise", f"{results.noise.system_noise_temp_k:.1f} K"),
        ("SNR", f"{results.snr.snr_db:.2f} dB"),
    ):
        log(f"{stage}: {value}")
    verdict = "VIABLE" if results.snr.link_viable else "NOT VIABLE"
    msg = f"Link margin {results.snr.link_margin_db:.2f} dB -> {verdict}"
    print(msg); log(msg)
    print("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
