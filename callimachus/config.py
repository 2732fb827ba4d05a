"""
Configuration for get_client_from_config.  Connection parameters may be
given in the environment (CALDAV_HOST, CALDAV_USERNAME, CALDAV_PASSWORD,
CALDAV_TIMEOUT) or in a config file, json or yaml, with one section per
account:

    {
        "default": {
            "caldav_host": "cal.example.org",
            "caldav_user": "bob@example.org",
            "caldav_pass": "hunter2"
        },
        "work": {"inherits": "default", "caldav_user": "robert@example.org"}
    }
"""
import json
import logging
import os
from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional

log = logging.getLogger("callimachus.config")

## aliases accepted in config files and in the environment
KEY_ALIASES = {
    "user": "username",
    "pass": "password",
}


def _normalize_key(key: str) -> str:
    return KEY_ALIASES.get(key, key)


def from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Picks up connection parameters from environment variables
    prepended with CALDAV_.  CALDAV_CONFIG_FILE and CALDAV_CONFIG_SECTION
    are not connection parameters and are skipped.
    """
    conf = {}
    for key in environ:
        if key.startswith("CALDAV_") and not key.startswith("CALDAV_CONFIG"):
            conf[_normalize_key(key[7:].lower())] = environ[key]
    return conf


def connection_params(section: Mapping[str, Any]) -> Dict[str, Any]:
    conn_params = {}
    for k in section:
        if k.startswith("caldav_") and section[k]:
            conn_params[_normalize_key(k[7:])] = section[k]
    return conn_params


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn: Optional[str]):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/callimachus/calendar.conf",
            f"{cfgdir}/callimachus/calendar.yaml",
            f"{cfgdir}/callimachus/calendar.json",
            "/etc/callimachus/calendar.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is an optional
            ## dependency, see the "yaml" extra.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.SafeLoader)
                except yaml.YAMLError:
                    log.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                log.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )

    except FileNotFoundError:
        log.info("no config file found at %s", fn)
    return None
