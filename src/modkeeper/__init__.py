"""
modkeeper - Hollow Knight mod manager

Reads the community ModLinks catalog, resolves requested mods and their
dependencies, installs hash-verified files, and publishes catalog updates.

Core Components:
- manifest: Catalog document model
- resolver: Name resolution
- closure: Dependency closure
- cache: Hash-verified content cache
- patcher: In-place catalog document patching
- install: Install tree management
- publish: Catalog publishing
"""
