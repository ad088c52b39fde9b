from __future__ import annotations

"""
config_loader.py
================
TOML run configuration for the link budget.

A run file may pull in two shared files:

    include_site   = "config/stations/<pair>.toml"   # [tx] / [rx]
    include_system = "config/system/<system>.toml"   # [system]

Merge order is site -> system -> run (nested tables merged key by key), then
``--set dotted.key=value`` overrides. ``parameters_from_config`` turns the
effective dict into immutable ``LinkBudgetParameters``; angles are degrees
in the files and radians in the model.
"""

import math
import os
from typing import Any, Dict, Iterable, List, Tuple

try:
    import tomllib as toml  # py311+
except ImportError:
    import tomli as toml  # fallback for older envs

import tomli_w

from eme_link_budget.link_core.ephemeris import (
    ASTROPY_SOURCE,
    moon_ephemeris_at,
    to_epoch_seconds,
)
from eme_link_budget.link_core.model import (
    IonosphereData,
    LinkBudgetParameters,
    MoonEphemeris,
    SiteParameters,
)
from eme_link_budget.physics.path_loss import SCATTERING_MODELS


def load_toml(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return toml.load(f)


def merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def apply_sets(cfg: Dict[str, Any], sets: Iterable[str]) -> Dict[str, Any]:
    for item in sets:
        if "=" not in item:
            raise ValueError(f"--set requires key=value, got: {item}")
        key, val = item.split("=", 1)
        path = key.strip().split(".")
        cursor = cfg
        for p in path[:-1]:
            if p not in cursor or not isinstance(cursor[p], dict):
                cursor[p] = {}
            cursor = cursor[p]
        cursor[path[-1]] = parse_scalar(val.strip())
    return cfg


def parse_scalar(s: str):
    sl = s.lower()
    if sl in ("true", "false"):
        return sl == "true"
    try:
        if "." in s or "e" in sl:
            return float(s)
        return int(s)
    except ValueError:
        return s


def _resolve_include(project_root: str, ref: str, kind: str) -> str:
    path = ref
    if not os.path.isabs(path):
        path = os.path.join(project_root, path)
    if not os.path.exists(path):
        raise FileNotFoundError(f"{kind} file not found: {path}")
    return path


def load_run_config(
    project_root: str,
    run_name: str | None,
    run_path: str | None,
    set_overrides: Iterable[str] = (),
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Compose site, system and run files, then apply --set.

    Returns (effective_cfg, summary_paths) where summary_paths has the keys
    run_path, site_path and system_path.
    """
    summary = {"run_path": None, "site_path": None, "system_path": None}

    if run_name and run_path:
        raise ValueError("Use either --run or --run-config, not both.")

    if run_name:
        run_path = os.path.join(project_root, "config", "runs", f"{run_name}.toml")

    if not run_path:
        raise ValueError("Missing --run or --run-config")

    if not os.path.isabs(run_path):
        run_path = os.path.normpath(os.path.join(project_root, run_path))

    if not os.path.exists(run_path):
        raise FileNotFoundError(
            f"Run file not found: {run_path}. Expected in config/runs for --run."
        )
    run_cfg = load_toml(run_path)
    summary["run_path"] = run_path

    site_cfg: Dict[str, Any] = {}
    system_cfg: Dict[str, Any] = {}

    site_ref = run_cfg.get("include_site")
    if site_ref:
        summary["site_path"] = _resolve_include(project_root, site_ref, "Site")
        site_cfg = load_toml(summary["site_path"])

    system_ref = run_cfg.get("include_system")
    if system_ref:
        summary["system_path"] = _resolve_include(project_root, system_ref, "System")
        system_cfg = load_toml(summary["system_path"])

    cfg = merge_dicts(site_cfg, system_cfg)
    cfg = merge_dicts(cfg, run_cfg)
    cfg = apply_sets(cfg, set_overrides)

    for table in ("tx", "rx", "system", "observation", "moon", "options", "sky_map"):
        cfg.setdefault(table, {})

    return cfg, summary


def dump_effective_config(cfg: Dict[str, Any]) -> str:
    return tomli_w.dumps(cfg)


# ----- config -> model -----

def _rad(table: Dict[str, Any], key: str, default: float = 0.0) -> float:
    return math.radians(float(table.get(key, default)))


def site_from_config(table: Dict[str, Any]) -> SiteParameters:
    return SiteParameters(
        latitude=_rad(table, "latitude_deg"),
        longitude=_rad(table, "longitude_deg"),
        psi=_rad(table, "psi_deg"),
        chi=_rad(table, "chi_deg"),
        grid_locator=str(table.get("grid_locator", "")),
        callsign=str(table.get("callsign", "")),
    )


def observation_time_from_config(cfg: Dict[str, Any]) -> float:
    when = cfg.get("observation", {}).get("time", 0.0)
    return to_epoch_seconds(when)


def moon_from_config(cfg: Dict[str, Any], observation_time: float) -> MoonEphemeris:
    moon = cfg.get("moon", {})
    source = str(moon.get("source", "manual")).lower()
    if source == ASTROPY_SOURCE:
        return moon_ephemeris_at(observation_time)
    if source != "manual":
        raise ValueError(f"Unsupported moon source '{source}'. Use 'manual' or 'astropy'.")
    return MoonEphemeris(
        right_ascension=_rad(moon, "ra_deg"),
        declination=_rad(moon, "dec_deg"),
        distance_km=float(moon.get("distance_km", 384400.0)),
        hour_angle_tx=_rad(moon, "hour_angle_tx_deg"),
        hour_angle_rx=_rad(moon, "hour_angle_rx_deg"),
        range_rate_km_s=float(moon.get("range_rate_km_s", 0.0)),
        libration_lon_rate_deg_day=float(moon.get("libration_lon_rate_deg_day", 0.0)),
        libration_lat_rate_deg_day=float(moon.get("libration_lat_rate_deg_day", 0.0)),
        ephemeris_source=str(moon.get("label", "Manual")),
    )


def ionosphere_from_config(table: Dict[str, Any]) -> IonosphereData:
    defaults = IonosphereData()
    return IonosphereData(
        vtec_tx=float(table.get("vtec_tx", defaults.vtec_tx)),
        vtec_rx=float(table.get("vtec_rx", defaults.vtec_rx)),
        hmf2_tx_km=float(table.get("hmf2_tx_km", defaults.hmf2_tx_km)),
        hmf2_rx_km=float(table.get("hmf2_rx_km", defaults.hmf2_rx_km)),
        b_magnitude_tx=float(table.get("b_magnitude_tx", defaults.b_magnitude_tx)),
        b_magnitude_rx=float(table.get("b_magnitude_rx", defaults.b_magnitude_rx)),
        b_inclination_tx=_rad(table, "b_inclination_tx_deg"),
        b_inclination_rx=_rad(table, "b_inclination_rx_deg"),
        b_declination_tx=_rad(table, "b_declination_tx_deg"),
        b_declination_rx=_rad(table, "b_declination_rx_deg"),
        data_source=str(table.get("data_source", defaults.data_source)),
    )


def parameters_from_config(cfg: Dict[str, Any]) -> LinkBudgetParameters:
    """Build immutable parameters from an effective configuration dict."""
    system = cfg.get("system", {})
    options = cfg.get("options", {})
    defaults = LinkBudgetParameters()

    model = str(options.get("scattering_model", defaults.scattering_model)).lower()
    if model not in SCATTERING_MODELS:
        raise ValueError(
            f"Unsupported scattering model '{model}'. "
            f"Use one of: {', '.join(sorted(SCATTERING_MODELS))}."
        )

    reliability = options.get("fading_reliability_percent")
    observation_time = observation_time_from_config(cfg)

    def num(key: str) -> float:
        return float(system.get(key, getattr(defaults, key)))

    def flag(key: str) -> bool:
        return bool(options.get(key, getattr(defaults, key)))

    return LinkBudgetParameters(
        tx_site=site_from_config(cfg.get("tx", {})),
        rx_site=site_from_config(cfg.get("rx", {})),
        frequency_mhz=num("frequency_mhz"),
        bandwidth_hz=num("bandwidth_hz"),
        tx_power_dbm=num("tx_power_dbm"),
        tx_gain_dbi=num("tx_gain_dbi"),
        rx_gain_dbi=num("rx_gain_dbi"),
        tx_feedline_loss_db=num("tx_feedline_loss_db"),
        rx_feedline_loss_db=num("rx_feedline_loss_db"),
        rx_noise_figure_db=num("rx_noise_figure_db"),
        physical_temp_k=num("physical_temp_k"),
        observation_time=observation_time,
        ionosphere=ionosphere_from_config(cfg.get("ionosphere", {})),
        moon_ephemeris=moon_from_config(cfg, observation_time),
        include_faraday_rotation=flag("include_faraday_rotation"),
        include_spatial_rotation=flag("include_spatial_rotation"),
        include_moon_reflection=flag("include_moon_reflection"),
        include_atmospheric_loss=flag("include_atmospheric_loss"),
        include_ground_spillover=flag("include_ground_spillover"),
        use_hagfors_model=(model == "hagfors"),
        required_snr_db=float(options.get("required_snr_db", defaults.required_snr_db)),
        fading_reliability_percent=None if reliability is None else float(reliability),
    )


def sky_map_candidates(cfg: Dict[str, Any], project_root: str) -> List[str]:
    """Configured sky-map paths, made absolute, in the order to try them."""
    out = []
    for p in cfg.get("sky_map", {}).get("paths", []):
        p = str(p)
        out.append(p if os.path.isabs(p) else os.path.join(project_root, p))
    return out


__all__ = [
    "load_toml",
    "merge_dicts",
    "apply_sets",
    "parse_scalar",
    "load_run_config",
    "dump_effective_config",
    "parameters_from_config",
    "site_from_config",
    "moon_from_config",
    "sky_map_candidates",
]
