"""Chain access - RPC clients, contract reads, log decoding."""
