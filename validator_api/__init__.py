"""Block reward and sync duty lookups for Ethereum beacon chain slots."""
