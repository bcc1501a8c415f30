"""On-chain metric aggregators, derived indicators and bundle assembly."""
