"""
Lib: the vocabulary components are written in.

- config_store: singleton config and per-actor counters
- orchestrator: deferred deploys and reply correlation
- admission: the mint gate and the eligibility check
- version: stored contract name and version

Kernel = machinery. Lib = language.
"""
