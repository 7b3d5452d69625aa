"""Concrete drivers behind the pool's connection protocol."""
