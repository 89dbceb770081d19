from .advanced_key_manager import (
    AdvancedKeyManager,
    load_api_keys_advanced,
    mask_key,
    read_key_file,
    should_switch_key,
    get_error_description,
)

__all__ = [
    "AdvancedKeyManager",
    "load_api_keys_advanced",
    "mask_key",
    "read_key_file",
    "should_switch_key",
    "get_error_description",
]
