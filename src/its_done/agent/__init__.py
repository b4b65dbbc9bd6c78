"""
Agent action pipeline.

- actions.py: typed tool calls, validated once at the wire boundary
- matching.py: text -> task lookup strategies
- resolver.py: duplicate-add guard + id resolution (pure)
- executor.py: applies resolved actions to the State Store
"""
