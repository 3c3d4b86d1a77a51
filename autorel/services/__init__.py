"""Application services.

Services implement the release workflow on top of the core types (core/)
and the infrastructure adapters (git/, platform/).
"""
