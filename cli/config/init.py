"""
scriptorium init command - Initialize library configuration.
"""

from infra.config import LibraryConfig, LibraryConfigManager, get_storage_root


def cmd_init(args):
    """Initialize library configuration."""
    manager = LibraryConfigManager(get_storage_root())

    if manager.exists() and not args.force:
        print(f"✗ Config already exists at: {manager.config_path}")
        print("  Use --force to overwrite")
        return

    config = LibraryConfig.with_defaults()
    manager.save(config)
    print(f"✓ Created config at: {manager.config_path}")

    print("\nConfiguration summary:")
    print(f"  API keys: {', '.join(config.api_keys.keys())}")
    print(f"  Model: {config.defaults.model}")
    print(f"  Languages: {config.defaults.language} → {config.defaults.target_language}")

    if not config.resolve_api_key("gemini"):
        print("\n⚠️  GEMINI_API_KEY is not set")
        print("   Add it to .env or run 'scriptorium config set-key gemini <key>'")
