"""Performance benchmarks for contactqp.

This package contains microbenchmarks for hot paths in the library,
currently element insertion into the CSR3 matrix engine.
"""
