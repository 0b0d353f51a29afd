"""Tests for qsearch oracles, iteration math and the search driver."""

import asyncio
import logging
import math

import numpy as np
import pytest

from qsearch.core.config import GroverConfig
from qsearch.exceptions import BackendError, CapacityError, DimensionError, PredicateError
from qsearch.quantum.engine import StatevectorBackend
from qsearch.quantum.grover import (
    GroverSearch,
    classical_search,
    classical_search_all,
    decide_solutions,
    search,
    search_async,
    search_value,
    search_values,
    verify_solution,
    wilson_lower_bound,
)
from qsearch.quantum.iteration import (
    GroverIterator,
    optimal_iterations,
    theoretical_success_probability,
)
from qsearch.quantum.oracle import (
    Oracle,
    build_oracle,
    divisible_by,
    even,
    in_range,
    oracle_for_value,
    oracle_for_values,
)


class TestOracle:
    """Test suite for oracle construction."""

    @pytest.mark.parametrize("num_qubits", [1, 2, 3, 5, 7])
    def test_marked_set_matches_brute_force(self, num_qubits):
        """Test the marked set is exactly {i : p(i)}."""
        predicates = [
            lambda i: (i * 7 + 3) % 5 == 0,
            lambda i: bin(i).count("1") == 2,
            lambda i: False,
            lambda i: True,
        ]
        for predicate in predicates:
            oracle = build_oracle(predicate, num_qubits)
            expected = {i for i in range(2 ** num_qubits) if predicate(i)}
            assert oracle.marked_set == expected
            assert oracle.marked_count == len(expected)

    def test_predicate_evaluated_once_per_index(self):
        calls = []

        def predicate(i):
            calls.append(i)
            return i == 3

        build_oracle(predicate, 4)
        assert calls == list(range(16))

    def test_evaluate_object_predicate(self):
        """Test objects exposing evaluate(index) are accepted."""

        class IsSeven:
            def evaluate(self, index):
                return index == 7

        oracle = build_oracle(IsSeven(), 3)
        assert oracle.marked_set == {7}

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            build_oracle(42, 2)

    def test_predicate_error_is_propagated(self):
        """Test that a throwing predicate surfaces with its index and cause."""

        def predicate(i):
            if i == 3:
                raise KeyError("board")
            return False

        with pytest.raises(PredicateError) as info:
            build_oracle(predicate, 3)

        assert info.value.index == 3
        assert isinstance(info.value.__cause__, KeyError)

    def test_oracle_for_values(self):
        oracle = oracle_for_values([5, 1, 5], 3)
        assert list(oracle.marked) == [1, 5]
        assert 5 in oracle
        assert 2 not in oracle

    def test_oracle_for_values_out_of_range(self):
        with pytest.raises(DimensionError):
            oracle_for_values([8], 3)

    def test_combinators(self):
        """Test AND / OR / NOT over compiled oracles."""
        a = oracle_for_values([1, 2], 3)
        b = oracle_for_values([2, 5], 3)

        assert (a | b).marked_set == {1, 2, 5}
        assert (a & b).marked_set == {2}
        assert (~a).marked_set == {0, 3, 4, 5, 6, 7}

    def test_combinators_need_same_width(self):
        with pytest.raises(DimensionError):
            oracle_for_value(1, 2) | oracle_for_value(1, 3)

    def test_predicate_factories(self):
        assert build_oracle(even, 3).marked_set == {0, 2, 4, 6}
        assert build_oracle(divisible_by(3), 3).marked_set == {0, 3, 6}
        assert build_oracle(in_range(2, 4), 3).marked_set == {2, 3, 4}

    def test_verify_on_statevector(self):
        oracle = build_oracle(lambda i: i in (0, 6), 3)
        assert oracle.verify(StatevectorBackend())

    def test_direct_construction_is_normalised(self):
        """Test unsorted, duplicated marked indices are sorted and deduplicated."""
        oracle = Oracle(3, np.array([6, 1, 6, 4]))

        assert oracle.marked.tolist() == [1, 4, 6]
        assert oracle.marked_count == 3
        assert all(oracle.is_marked(i) for i in (1, 4, 6))
        assert not any(oracle.is_marked(i) for i in (0, 2, 3, 5, 7))

    def test_invalid_width(self):
        with pytest.raises(DimensionError):
            build_oracle(even, 0)


class TestIterations:
    """Test suite for iteration-count math."""

    @pytest.mark.parametrize("size,marked,expected", [
        (8, 1, 2),
        (16, 1, 3),
        (16, 4, 2),
        (1024, 1, 25),
        (1, 1, 0),
        (4, 4, 0),
        (4, 9, 0),
    ])
    def test_known_values(self, size, marked, expected):
        assert optimal_iterations(size, marked) == expected

    def test_single_marked_tracks_sqrt(self):
        """Test k stays within rounding of (pi/4) * sqrt(N) and non-negative."""
        for size in range(1, 2000):
            k = optimal_iterations(size, 1)
            assert k >= 0
            if size > 1:
                assert abs(k - math.pi / 4 * math.sqrt(size)) <= 0.5

    def test_zero_marked_treated_as_one(self):
        assert optimal_iterations(64, 0) == optimal_iterations(64, 1)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            optimal_iterations(0, 1)

    def test_theoretical_probability(self):
        # One of four: a single iteration lands exactly on the target.
        assert theoretical_success_probability(4, 1, 1) == pytest.approx(1.0)
        assert theoretical_success_probability(16, 4, 0) == pytest.approx(0.25)
        assert theoretical_success_probability(16, 0, 3) == 0.0
        assert theoretical_success_probability(16, 16, 3) == 1.0

    def test_iterator_tracks_history(self):
        backend = StatevectorBackend()
        oracle = oracle_for_value(3, 2)
        register = backend.create_register(2)
        backend.apply_hadamard_to_all(register)

        iterator = GroverIterator(backend)
        result = iterator.run(register, oracle, 1, track_probabilities=True)

        assert result.iterations_applied == 1
        assert result.probability_history == [pytest.approx(1.0)]

    def test_iterator_matches_theory(self):
        backend = StatevectorBackend()
        oracle = oracle_for_values([3, 17, 40], 6)
        iterator = GroverIterator(backend)

        for k in range(6):
            register = backend.create_register(6)
            backend.apply_hadamard_to_all(register)
            iterator.run(register, oracle, k)
            assert iterator.marked_probability(register, oracle) == pytest.approx(
                theoretical_success_probability(64, 3, k)
            )

    def test_custom_diffuser(self):
        backend = StatevectorBackend()
        register = backend.create_register(2)
        backend.apply_hadamard_to_all(register)
        seen = []

        GroverIterator(backend).run(
            register, oracle_for_value(1, 2), 3, diffuser=lambda reg: seen.append(reg)
        )
        assert len(seen) == 3

    def test_negative_iterations(self):
        backend = StatevectorBackend()
        register = backend.create_register(2)
        with pytest.raises(ValueError):
            GroverIterator(backend).run(register, oracle_for_value(1, 2), -1)


class TestGroverSearch:
    """Test suite for the search driver."""

    def test_single_target_scenario(self):
        """Test N=8, target 5, 200 shots, solution threshold 0.2."""
        config = GroverConfig(shots=200, solution_threshold=0.2, random_seed=11)
        result = search(lambda i: i == 5, 3, StatevectorBackend(), config)

        assert 5 in result.solutions
        assert result.solutions == frozenset({5})
        assert result.frequency(5) > 1 / 8
        assert result.iterations_used == 2
        assert result.expected_success_probability == pytest.approx(
            theoretical_success_probability(8, 1, 2)
        )
        assert result.success

    def test_zero_iterations_is_uniform(self):
        """Test four marked of sixteen with Iterations pinned to 0."""
        config = GroverConfig(iterations=0, shots=4000, random_seed=3)
        result = search(lambda i: i % 4 == 0, 4, StatevectorBackend(), config)

        assert result.iterations_used == 0
        assert result.expected_success_probability == pytest.approx(0.25)
        assert result.success_probability == pytest.approx(0.25, abs=0.04)
        assert set(result.histogram) == set(range(16))
        assert all(150 < count < 350 for count in result.histogram.values())
        assert not result.success

    def test_low_confidence_logs_warning(self, caplog):
        """Test a below-threshold result is logged and still returned."""
        config = GroverConfig(iterations=0, shots=400, random_seed=3)
        with caplog.at_level(logging.WARNING, logger="qsearch.quantum.grover"):
            result = search(lambda i: i % 4 == 0, 4, StatevectorBackend(), config)

        assert result is not None
        assert not result.success
        warnings = [
            r for r in caplog.records
            if r.name == "qsearch.quantum.grover" and r.levelno == logging.WARNING
        ]
        assert len(warnings) == 1
        assert "Low-confidence" in warnings[0].getMessage()

    def test_confident_result_logs_no_warning(self, caplog):
        config = GroverConfig(shots=200, random_seed=11)
        with caplog.at_level(logging.WARNING, logger="qsearch.quantum.grover"):
            result = search(lambda i: i == 5, 3, StatevectorBackend(), config)

        assert result.success
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_solutions_satisfy_predicate(self):
        """Test unmarked indices never become solutions, even at a low threshold."""
        config = GroverConfig(iterations=0, shots=400, solution_threshold=0.05, random_seed=3)
        result = search(lambda i: i % 4 == 0, 4, StatevectorBackend(), config)

        assert result.solutions
        assert all(i % 4 == 0 for i in result.solutions)
        assert result.solutions <= {0, 4, 8, 12}
        # Unmarked indices are still sampled and kept in the histogram
        assert any(i % 4 for i in result.histogram)

    def test_histogram_is_read_only(self):
        result = search(lambda i: i == 3, 3, config=GroverConfig(shots=50, random_seed=5))

        with pytest.raises(TypeError):
            result.histogram[3] = 0
        assert sum(result.histogram.values()) == 50

    def test_no_solution_is_not_an_error(self):
        """Test an always-false predicate returns an empty, zero-confidence result."""
        result = search(lambda i: False, 2, StatevectorBackend(), GroverConfig(random_seed=1))

        assert result.solutions == frozenset()
        assert result.success_probability == 0.0
        assert result.histogram == {}
        assert not result.success
        assert result.shots == 0

    def test_all_marked(self):
        result = search(lambda i: True, 3, config=GroverConfig(shots=100, random_seed=2))

        assert result.iterations_used == 0
        assert result.success_probability == 1.0
        assert result.expected_success_probability == pytest.approx(1.0)

    def test_reproducible_with_seed(self):
        config = GroverConfig(shots=500, random_seed=99)
        first = search(lambda i: i in (3, 9, 12), 5, config=config)
        second = search(lambda i: i in (3, 9, 12), 5, config=config)

        assert first.histogram == second.histogram
        assert first.solutions == second.solutions

    def test_histogram_sums_to_shots(self):
        result = search(divisible_by(5), 6, config=GroverConfig(shots=321, random_seed=0))
        assert sum(result.histogram.values()) == 321
        assert all(0 <= i < 64 for i in result.histogram)

    def test_zero_shots(self):
        result = search(lambda i: i == 1, 3, config=GroverConfig(shots=0))
        assert result.histogram == {}
        assert result.solutions == frozenset()
        assert result.success_probability == 0.0
        assert result.expected_success_probability > 0.9

    def test_iteration_override(self):
        result = search(lambda i: i == 2, 4, config=GroverConfig(iterations=1, random_seed=4))
        assert result.iterations_used == 1

    def test_capacity_checked_before_oracle(self):
        """Test CapacityError is raised before the predicate runs."""
        calls = []

        def predicate(i):
            calls.append(i)
            return False

        with pytest.raises(CapacityError) as info:
            search(predicate, 5, StatevectorBackend(max_qubits=4))

        assert calls == []
        assert info.value.max_qubits == 4

    def test_non_positive_qubits(self):
        with pytest.raises(DimensionError):
            search(even, 0)

    def test_predicate_error(self):
        with pytest.raises(PredicateError):
            search(lambda i: 1 / (i - 2) > 0, 3)

    def test_backend_error_propagates(self):
        """Test substrate failures surface unchanged."""

        class BrokenBackend(StatevectorBackend):
            def apply_diffusion(self, register):
                raise BackendError("device offline")

        with pytest.raises(BackendError, match="device offline"):
            GroverSearch(BrokenBackend()).search(lambda i: i == 1, 3)

    def test_track_probabilities(self):
        result = GroverSearch().search(
            lambda i: i == 6, 4, GroverConfig(random_seed=1), track_probabilities=True
        )
        assert len(result.probability_history) == result.iterations_used
        assert result.probability_history[-1] == pytest.approx(result.expected_success_probability)

    def test_result_reporting_fields(self):
        result = search(lambda i: i == 5, 3, config=GroverConfig(shots=200, random_seed=11))
        data = result.to_dict()

        assert data["solutions"][0] == 5
        assert data["backend"] == "statevector"
        assert result.search_space_size == 8
        assert result.quantum_speedup == pytest.approx(4.0)

    def test_search_values(self):
        config = GroverConfig(shots=300, random_seed=8)
        result = search_values([3, 12], 4, config=config)

        assert result.solutions == frozenset({3, 12})
        assert search_value(6, 3, config=config).solutions == frozenset({6})

    def test_search_values_empty(self):
        with pytest.raises(ValueError):
            search_values([], 3)

    def test_search_async(self):
        config = GroverConfig(shots=200, random_seed=5)
        result = asyncio.run(search_async(lambda i: i == 4, 3, config=config))
        assert 4 in result.solutions

    def test_classical_helpers(self):
        assert classical_search(lambda i: i > 5, 8) == 6
        assert classical_search(lambda i: False, 8) is None
        assert classical_search_all(even, 6) == [0, 2, 4]

    def test_verify_solution(self):
        result = search(lambda i: i == 5, 3, config=GroverConfig(shots=200, random_seed=11))
        assert verify_solution(lambda i: i == 5, result)
        assert not verify_solution(lambda i: i == 4, result)


class TestDecisionRule:
    """Test suite for turning histograms into solutions."""

    def test_threshold_rule(self):
        config = GroverConfig(solution_threshold=0.1)
        assert decide_solutions({5: 180, 1: 20}, 200, config) == frozenset({1, 5})

    def test_wilson_rule_is_stricter(self):
        config = GroverConfig(solution_threshold=0.1, decision_rule="wilson")
        assert decide_solutions({5: 180, 1: 20}, 200, config) == frozenset({5})

    def test_wilson_bound(self):
        assert wilson_lower_bound(0, 100) == 0.0
        assert 0.0 < wilson_lower_bound(50, 100) < 0.5
        assert wilson_lower_bound(5, 0) == 0.0
