# Keyward API - HTTP surface for the vault operations
