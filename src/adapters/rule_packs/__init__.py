from adapters.rule_packs.loader import load_rule_pack, resolve_rule_pack

__all__ = [
    "load_rule_pack",
    "resolve_rule_pack",
]
