"""Compiler version parsing, caching and resolution."""
