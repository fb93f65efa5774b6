from infra.config import LibraryConfigManager, get_storage_root


def cmd_config_set(args):
    """scriptorium config set <dotted.key> <value>"""
    manager = LibraryConfigManager(get_storage_root())

    if not manager.exists():
        print(f"✗ No config found at: {manager.config_path}")
        print("  Run 'scriptorium init' to create one")
        return

    # ValidationError propagates to main(), which prints it and exits 1
    _, stored = manager.set_value(args.key, args.value)
    print(f"✓ Set {args.key} = {stored!r}")


def cmd_config_set_key(args):
    manager = LibraryConfigManager(get_storage_root())
    manager.set_api_key(args.name, args.value)
    print(f"✓ Stored API key '{args.name}' in {manager.config_path}")
