import unittest

from easymip import MIP, AlreadyCommitted, MIPSolver, NoSolution

from .models import build_diet


class TestCandidateSolutions(unittest.TestCase):
    def setUp(self):
        self.solver, foods, _ = build_diet()
        self.addCleanup(self.solver.close)
        self.corn, self.milk, self.bread = foods

    def test_feasible_candidate_is_accepted(self):
        sol = self.solver.empty_solution()
        self.assertEqual(sol.status(), MIP.UNKNOWN)
        sol.set_value(self.milk, 10)
        sol.set_value(self.bread, 13)
        self.assertTrue(sol.commit())

        self.assertEqual(sol.status(), MIP.FEASIBLE)
        self.assertTrue(sol.is_feasible())
        self.assertFalse(sol.is_optimal())
        self.assertEqual(sol.value(self.milk), 10)
        self.assertEqual(sol.value(self.corn), 0)
        self.assertAlmostEqual(sol.objective(), 0.23 * 10 + 0.05 * 13)

    def test_infeasible_candidate_is_rejected(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 1)
        self.assertFalse(sol.commit())
        self.assertEqual(sol.status(), MIP.UNKNOWN)
        with self.assertRaises(NoSolution):
            sol.objective()

        # A rejected candidate stays open and can be fixed.
        sol.set_value(self.milk, 10)
        sol.set_value(self.bread, 13)
        self.assertTrue(sol.commit())

    def test_fractional_value_is_rejected(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 10.5)
        sol.set_value(self.bread, 13)
        self.assertFalse(sol.commit())

    def test_out_of_bounds_value_is_rejected(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 1001)
        self.assertFalse(sol.commit())

    def test_empty_candidate_is_rejected(self):
        self.assertFalse(self.solver.empty_solution().commit())

    def test_committed_candidate_is_read_only(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 10)
        sol.set_value(self.bread, 13)
        self.assertTrue(sol.commit())
        with self.assertRaises(AlreadyCommitted):
            sol.set_value(self.corn, 1)
        with self.assertRaises(AlreadyCommitted):
            sol.commit()

    def test_open_candidate_values(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 7)
        self.assertEqual(sol.value(self.milk), 7)
        with self.assertRaises(NoSolution):
            sol.value(self.corn)

    def test_accepted_candidate_keeps_optimum(self):
        optimum = self.solver.solve().objective()
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 10)
        sol.set_value(self.bread, 13)
        self.assertTrue(sol.commit())
        hinted = self.solver.solve()
        self.assertTrue(hinted.is_optimal())
        self.assertAlmostEqual(hinted.objective(), optimum, places=6)
        again = self.solver.solve()
        self.assertTrue(again.is_optimal())
        self.assertAlmostEqual(again.objective(), optimum, places=6)

    def _accept_candidate(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.milk, 10)
        sol.set_value(self.bread, 13)
        self.assertTrue(sol.commit())

    def test_candidate_before_first_solve_then_resolve(self):
        self._accept_candidate()
        results = [self.solver.solve() for _ in range(3)]
        for sol in results:
            self.assertTrue(sol.is_optimal())
        self.assertAlmostEqual(
            results[0].objective(), results[2].objective(), places=6
        )

    def test_candidate_then_model_change(self):
        self.solver.solve()
        self._accept_candidate()
        self.solver.solve()
        row = self.solver.constraint()
        row.add_variable(self.corn, 1)
        row.commit(5, 1000)
        sol = self.solver.solve()
        self.assertTrue(sol.is_optimal())
        self.assertGreaterEqual(sol.value(self.corn), 5 - 1e-6)

    def test_candidate_then_new_variable(self):
        self._accept_candidate()
        extra = self.solver.integer_variable(0, 4, 1)
        sol = self.solver.solve()
        self.assertTrue(sol.is_optimal())
        self.assertAlmostEqual(sol.value(extra), 0)


class TestEqualityCandidates(unittest.TestCase):
    def setUp(self):
        self.solver = MIPSolver("equality")
        self.addCleanup(self.solver.close)
        self.x = self.solver.integer_variable(0, 10)
        self.y = self.solver.integer_variable(0, 10)
        row = self.solver.constraint()
        row.add_variable(self.x, 3)
        row.add_variable(self.y, 2)
        row.commit(12, 12)

    def test_exact_sum_is_accepted(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.x, 2)
        sol.set_value(self.y, 3)
        self.assertTrue(sol.commit())

    def test_inexact_sum_is_rejected(self):
        sol = self.solver.empty_solution()
        sol.set_value(self.x, 2)
        sol.set_value(self.y, 2)
        self.assertFalse(sol.commit())

    def test_repeated_terms_checked_additively(self):
        solver = MIPSolver("repeated")
        self.addCleanup(solver.close)
        x = solver.integer_variable(0, 10)
        row = solver.constraint()
        row.add_variable(x, 1)
        row.add_variable(x, 1)
        row.commit(6, 6)

        good = solver.empty_solution()
        good.set_value(x, 3)
        self.assertTrue(good.commit())
        bad = solver.empty_solution()
        bad.set_value(x, 6)
        self.assertFalse(bad.commit())


if __name__ == "__main__":
    unittest.main()
