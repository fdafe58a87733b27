"""
Micro-benchmark for matcher.py performance analysis.

Tests:
1. parse_catalog() on a synthetic 10k catalog
2. match_lists() end-to-end on 1k synthetic standardized lines
3. Individual function hot spots (normalize_text, normalize_model, parse_line)

Usage:
    python benchmark_matcher.py
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
import time
import numpy as np
from matcher import (
    parse_catalog, parse_line, match_lists, normalize_text, normalize_model,
)

MODELS = {
    'Xiaomi': ['Redmi 14C', 'Redmi Note 13', 'Redmi Note 13 Pro', 'Redmi Note 14 Pro+', 'Poco X6', 'Redmi A3'],
    'Realme': ['C61', 'C63', 'C75', 'Note 60', '12 Pro'],
    'Motorola': ['Moto G04', 'Moto G24', 'Moto G84', 'Edge 50'],
    'Samsung': ['Galaxy A06', 'Galaxy A15', 'Galaxy A35', 'Galaxy S24'],
}
STORAGE = ['64GB', '128GB', '256GB', '512GB']
RAM = ['4GB', '6GB', '8GB', '12GB']
COLORS = ['Preto', 'Azul', 'Verde', 'Dourado', 'Prata', 'Roxo', 'Branco']
NETWORKS = ['4G', '5G']


def _random_product(rng: np.random.Generator) -> str:
    brand = rng.choice(list(MODELS))
    model = rng.choice(MODELS[brand])
    return (f"{brand} {model} {rng.choice(STORAGE)} {rng.choice(RAM)} "
            f"{rng.choice(COLORS)} {rng.choice(NETWORKS)}")


def generate_synthetic_catalog(n_rows: int = 10000, seed: int = 7) -> str:
    """Generate a synthetic "name<TAB>sku" catalog for benchmarking."""
    rng = np.random.default_rng(seed)
    return '\n'.join(f"{_random_product(rng)}\t#{i:05d}" for i in range(n_rows))


def generate_synthetic_lines(n_rows: int = 1000, seed: int = 11) -> str:
    """Generate standardized lines (product + trailing price) for matching."""
    rng = np.random.default_rng(seed)
    return '\n'.join(f"{_random_product(rng)} {rng.integers(400, 4000)}" for _ in range(n_rows))


def benchmark_function(func, *args, **kwargs):
    """Benchmark a function and return (result, elapsed_ms)."""
    start = time.perf_counter()
    result = func(*args, **kwargs)
    end = time.perf_counter()
    elapsed_ms = (end - start) * 1000
    return result, elapsed_ms


def benchmark_normalization(n_iterations: int = 10000):
    """Benchmark normalize_text() / normalize_model() / parse_line()."""
    test_strings = [
        "Xiaomi Redmi Note 14 Pro+ 5G 256GB 8GB Roxo 5G 1890",
        "Realme C75X 256GB 8GB Dourado 4G 725",
        "Motorola Moto G84 256GB 8GB Azul 5G 1.299,00",
        "Samsung Galaxy A15 128GB 4GB Preto 4G 690",
    ]

    print("\n" + "="*70)
    print("BENCHMARK: normalization and line parsing")
    print("="*70)

    for test_str in test_strings:
        normalize_text.cache_clear()
        normalize_model.cache_clear()
        start = time.perf_counter()
        for _ in range(n_iterations):
            _ = parse_line(test_str)
        end = time.perf_counter()

        elapsed_ms = (end - start) * 1000
        per_call_us = elapsed_ms * 1000 / n_iterations

        print(f"\nInput: {test_str}")
        print(f"  model_base: {parse_line(test_str).model_base!r}")
        print(f"  parse_line total: {elapsed_ms:.2f}ms ({n_iterations} calls)")
        print(f"  Per call: {per_call_us:.2f}μs")


def benchmark_parse_catalog():
    """Benchmark parse_catalog() on a 10k catalog."""
    print("\n" + "="*70)
    print("BENCHMARK: parse_catalog() - 10k catalog")
    print("="*70)

    catalog_text = generate_synthetic_catalog(10000)
    entries, elapsed = benchmark_function(parse_catalog, catalog_text)

    brands = {}
    for entry in entries:
        brands[entry.brand.value] = brands.get(entry.brand.value, 0) + 1

    print(f"\nCatalog Stats:")
    print(f"  Entries: {len(entries)}")
    for brand, count in brands.items():
        print(f"  {brand}: {count}")
    print(f"  Parse time: {elapsed:.2f}ms")
    print(f"  Parsing rate: {len(entries) / (elapsed / 1000):.0f} rows/sec")


def benchmark_match_lists():
    """Benchmark match_lists() end-to-end on 1k lines against 10k entries."""
    print("\n" + "="*70)
    print("BENCHMARK: match_lists() - 1k lines x 10k catalog")
    print("="*70)

    catalog_text = generate_synthetic_catalog(10000)
    lines_text = generate_synthetic_lines(1000)

    report, match_time = benchmark_function(match_lists, lines_text, catalog_text)
    total = len(report.details)

    print(f"  Matching time: {match_time:.2f}ms")
    print(f"  Per-line time: {match_time / max(total, 1):.2f}ms")
    print(f"  Throughput: {total / (match_time / 1000):.0f} lines/sec")

    print(f"\nMatch Results:")
    print(f"  with code: {len(report.with_code)} ({len(report.with_code)/max(total, 1)*100:.1f}%)")
    print(f"  no code: {len(report.no_code)} ({len(report.no_code)/max(total, 1)*100:.1f}%)")


def main():
    """Run all benchmarks."""
    print("="*70)
    print("MATCHER.PY PERFORMANCE BENCHMARK")
    print("="*70)

    benchmark_normalization(10000)
    benchmark_parse_catalog()
    benchmark_match_lists()

    print("\n" + "="*70)
    print("BENCHMARK COMPLETE")
    print("="*70)


if __name__ == '__main__':
    main()
