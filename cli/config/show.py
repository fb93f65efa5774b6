"""
scriptorium config show command - Display library configuration.
"""

from cli.helpers import mask_key, print_json
from infra.config import LibraryConfigManager, get_storage_root


def cmd_config_show(args):
    """Show library configuration."""
    manager = LibraryConfigManager(get_storage_root())

    if not manager.exists():
        print(f"✗ No config found at: {manager.config_path}")
        print("  Run 'scriptorium init' to create one")
        return

    config = manager.load()

    if args.json:
        data = config.model_dump()
        # Hide API keys unless requested
        if not args.reveal_keys:
            data['api_keys'] = {
                k: mask_key(config.resolve_api_key(k)) for k in data['api_keys']
            }
        print_json(data)
        return

    print(f"\n📋 Library Configuration")
    print(f"   Path: {manager.config_path}\n")

    print("API Keys:")
    for key_name in config.api_keys:
        resolved = config.resolve_api_key(key_name)
        if args.reveal_keys:
            display = resolved or "(not set)"
        else:
            display = mask_key(resolved)
        print(f"  {key_name}: {display}")

    provider = config.provider
    print("\nProvider:")
    print(f"  base_url: {provider.base_url}")
    print(f"  timeouts: connect={provider.connect_timeout}s request={provider.request_timeout}s "
          f"upload={provider.upload_timeout}s image={provider.image_timeout}s")
    print(f"  retries: {provider.max_retries} (backoff {provider.backoff_base}s → {provider.backoff_max}s)")

    print("\nDefaults:")
    for name, value in config.defaults.model_dump().items():
        print(f"  {name}: {value}")
    print()
