"""Domain layer — types, rules, models, and the document codec.

This layer depends on stdlib, pydantic, and ruamel.yaml; the codec also
loads its packaged Jinja2 template. It must never import from services,
commands, or config.
"""
