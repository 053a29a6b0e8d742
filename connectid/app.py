import argparse
import json
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .env import Settings, load_env
from .logger import get_logger
from .optout import OptOutFlag, opt_in, opt_out
from .registry import SubmoduleRegistry
from .schema import config_params, validate_params
from .storage import JsonFileStore, StoreError
from .submodule import MODULE_NAME, ConnectIdSubmodule
from .transport import RequestsTransport

CACHE_KEY = "connectId"


def build_registry(store, settings: Settings) -> SubmoduleRegistry:
    """Create the host registry with the ConnectID submodule registered."""
    logger = get_logger(level=settings.log_level, log_dir=settings.log_dir, enable_file=settings.log_dir is not None)
    submodule = ConnectIdSubmodule(
        transport=RequestsTransport(timeout=settings.timeout, max_retries=settings.max_retries),
        opt_out=OptOutFlag(store),
        logger=logger,
    )
    registry = SubmoduleRegistry()
    registry.register(submodule)
    return registry


def _open_store(args: argparse.Namespace, settings: Settings) -> JsonFileStore:
    return JsonFileStore(Path(args.store) if args.store else settings.store_path)


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON in {path}: {e}")


def _print_id(resolved: Optional[Dict[str, Any]]) -> None:
    if resolved is None:
        print("No identifier.")
    else:
        print(json.dumps(resolved))


def build_config(args: argparse.Namespace) -> Dict[str, Any]:
    params: Dict[str, Any] = {"he": args.he}
    if args.pixel_id:
        params["pixelId"] = args.pixel_id
    if args.endpoint:
        params["endpoint"] = args.endpoint
    if args.first_party:
        params["1p"] = True
    return {"name": MODULE_NAME, "params": params}


def build_consent(args: argparse.Namespace) -> Dict[str, Any]:
    consent: Dict[str, Any] = {}
    if args.gdpr_applies:
        consent["gdpr"] = {"gdprApplies": True, "consentString": args.gdpr_consent or ""}
    if args.us_privacy:
        consent["uspConsent"] = args.us_privacy
    return consent


def cmd_fetch(args: argparse.Namespace, settings: Settings) -> None:
    store = _open_store(args, settings)
    provider = build_registry(store, settings).get(MODULE_NAME)

    handle = provider.resolve(build_config(args), build_consent(args))
    if handle is None:
        print("No request made (opted out or invalid configuration).")
        return

    result: Dict[str, Any] = {}
    handle.callback(lambda payload=None: result.update(payload=payload))
    payload = result.get("payload")
    if payload is not None:
        try:
            store.set_item(CACHE_KEY, payload)
        except StoreError as e:
            raise SystemExit(str(e))
    _print_id(provider.decode(payload))


def cmd_decode(args: argparse.Namespace, settings: Settings) -> None:
    store = _open_store(args, settings)
    provider = build_registry(store, settings).get(MODULE_NAME)
    if args.input:
        value = _read_json(Path(args.input))
    else:
        try:
            value = store.get_item(CACHE_KEY)
        except StoreError as e:
            raise SystemExit(str(e))
    _print_id(provider.decode(value))


def cmd_validate(args: argparse.Namespace, settings: Settings) -> None:
    config = _read_json(Path(args.input))
    errors = validate_params(config_params(config))
    if errors:
        print("Invalid configuration:")
        for err in errors:
            print(f"  - {err}")
        raise SystemExit(1)
    print("Configuration is valid.")


def cmd_opt_out(args: argparse.Namespace, settings: Settings) -> None:
    store = _open_store(args, settings)
    try:
        opt_out(store)
    except StoreError as e:
        raise SystemExit(str(e))
    print(f"Opted out of {MODULE_NAME} in {store.path}")


def cmd_opt_in(args: argparse.Namespace, settings: Settings) -> None:
    store = _open_store(args, settings)
    try:
        opt_in(store)
    except StoreError as e:
        raise SystemExit(str(e))
    print(f"Cleared {MODULE_NAME} opt-out in {store.path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="connectid", description="Yahoo ConnectID resolver")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    fet = subparsers.add_parser("fetch", help="Fetch a ConnectID and cache the raw payload")
    fet.add_argument("--he", required=True, help="Hashed email")
    fet.add_argument("--pixel-id", help="Partner pixel id (selects the production endpoint)")
    fet.add_argument("--endpoint", help="Full override endpoint URL")
    fet.add_argument("--first-party", action="store_true", help="Send the first-party flag (1p=1)")
    fet.add_argument("--gdpr-applies", action="store_true", help="GDPR applies to this user")
    fet.add_argument("--gdpr-consent", help="TCF consent string")
    fet.add_argument("--us-privacy", help="US privacy string")
    fet.add_argument("--store", help="Path to JSON store (default: CONNECTID_STORE or data/store.json)")
    fet.set_defaults(func=cmd_fetch)

    dec = subparsers.add_parser("decode", help="Decode a stored payload into the public id")
    dec.add_argument("--input", help="Path to a payload JSON (default: cached payload)")
    dec.add_argument("--store", help="Path to JSON store")
    dec.set_defaults(func=cmd_decode)

    val = subparsers.add_parser("validate", help="Validate a submodule configuration JSON")
    val.add_argument("--input", required=True, help="Path to configuration JSON")
    val.set_defaults(func=cmd_validate)

    out = subparsers.add_parser("opt-out", help="Set the ConnectID opt-out marker")
    out.add_argument("--store", help="Path to JSON store")
    out.set_defaults(func=cmd_opt_out)

    inn = subparsers.add_parser("opt-in", help="Clear the ConnectID opt-out marker")
    inn.add_argument("--store", help="Path to JSON store")
    inn.set_defaults(func=cmd_opt_in)

    return parser


def main(argv=None):
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        try:
            settings = Settings.from_env()
        except ValueError as e:
            raise SystemExit(str(e))
        args.func(args, settings)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
