"""
Tests for the MPC Controller.

Tests covering:
1. Optimality against the finite-horizon LQR solution
2. Initial state pinning
3. Warm-start caching across solves
4. Cache preservation on solver failure
5. Closed-loop simulation
"""

import numpy as np
import pytest


def lq_problem(p):
    from casmpc import Problem

    return Problem(
        "discretized", nx=1, nu=1, horizon=p["horizon"], dt=1.0,
        dynamics=lambda x, u: p["a"] * x + p["b"] * u,
        stage_cost=lambda x, u: p["q"] * x[0] ** 2 + p["r"] * u[0] ** 2,
        terminal_cost=lambda x: p["qf"] * x[0] ** 2,
    )


def stub_mpc(stub_factory, horizon=4):
    from casmpc import MPC
    from casmpc.models import double_integrator

    return MPC(double_integrator(horizon=horizon), solver_factory=stub_factory)


class TestOptimality:
    """Test the first control against closed-form LQR."""

    @pytest.mark.parametrize("x0", [1.0, -2.5, 0.3])
    def test_matches_lqr_ipopt(self, scalar_lq, lqr_gain, ipopt_config, x0):
        from casmpc import MPC

        K0 = lqr_gain(**scalar_lq)
        mpc = MPC(lq_problem(scalar_lq), config=ipopt_config)

        u = mpc.solve(np.array([x0]))

        assert u.shape == (1,)
        np.testing.assert_allclose(u, [-K0 * x0], atol=1e-5)

    def test_matches_lqr_slsqp(self, scalar_lq, lqr_gain):
        from casmpc import MPC

        K0 = lqr_gain(**scalar_lq)
        mpc = MPC(lq_problem(scalar_lq), solver_name="slsqp")

        u = mpc.solve(np.array([1.0]))

        np.testing.assert_allclose(u, [-K0], atol=1e-3)

    def test_linear_problem_model(self, scalar_lq, lqr_gain, ipopt_config):
        """LinearProblem builds the same LQ problem from matrices."""
        from casmpc import MPC
        from casmpc.models import LinearProblem

        p = scalar_lq
        prob = LinearProblem([[p["a"]]], [[p["b"]]], [[p["q"]]], [[p["r"]]],
                             horizon=p["horizon"], Qf=[[p["qf"]]])
        mpc = MPC(prob, config=ipopt_config)

        u = mpc.solve(np.array([2.0]))

        np.testing.assert_allclose(u, [-2.0 * lqr_gain(**p)], atol=1e-5)

    def test_control_bounds_respected(self, ipopt_config):
        from casmpc import MPC
        from casmpc.models import double_integrator

        prob = double_integrator(horizon=15)
        prob.set_control_bound(-0.5, 0.5)
        mpc = MPC(prob, config=ipopt_config)

        u = mpc.solve(np.array([3.0, 0.0]))

        assert u[0] == pytest.approx(-0.5, abs=1e-6)
        assert np.all(np.abs(mpc.last_result.u) <= 0.5 + 1e-6)

    def test_state_bounds_respected(self, ipopt_config):
        """Velocity limit holds along the predicted trajectory."""
        from casmpc import MPC
        from casmpc.models import double_integrator

        prob = double_integrator(horizon=20)
        prob.set_state_bound([-np.inf, -0.3], [np.inf, 0.3])
        mpc = MPC(prob, config=ipopt_config)

        mpc.solve(np.array([2.0, 0.0]))

        velocities = mpc.last_result.x[1:, 1]
        assert np.all(np.abs(velocities) <= 0.3 + 1e-6)

    def test_last_result(self, ipopt_config):
        from casmpc import MPC, MPCResult
        from casmpc.models import double_integrator

        mpc = MPC(double_integrator(horizon=10), config=ipopt_config)
        u = mpc.solve(np.array([1.0, 0.0]))

        result = mpc.last_result
        assert isinstance(result, MPCResult)
        assert result.status == "optimal"
        assert result.x.shape == (11, 2)
        assert result.u.shape == (10, 1)
        np.testing.assert_allclose(result.x[0], [1.0, 0.0], atol=1e-9)
        np.testing.assert_array_equal(result.optimal_control, u)

    def test_repeat_solve_same_answer(self, ipopt_config):
        """A warm-started solve reproduces the cold solution."""
        from casmpc import MPC
        from casmpc.models import inverted_pendulum

        mpc = MPC(inverted_pendulum(horizon=20), config=ipopt_config)
        x = np.array([0.4, 0.0])

        u1 = mpc.solve(x)
        u2 = mpc.solve(x)

        np.testing.assert_allclose(u2, u1, atol=1e-5)


class TestPinning:
    """Test that the measured state is pinned into x_0's bounds."""

    def test_first_slot_pinned(self, stub_factory):
        mpc = stub_mpc(stub_factory)
        nlp = mpc.nlp

        mpc.solve(np.array([0.7, -0.2]))
        call = stub_factory.created[0].calls[0]

        np.testing.assert_array_equal(call["lbx"][:2], [0.7, -0.2])
        np.testing.assert_array_equal(call["ubx"][:2], [0.7, -0.2])
        np.testing.assert_array_equal(call["lbx"][2:], nlp.lbw[2:])
        np.testing.assert_array_equal(call["ubx"][2:], nlp.ubw[2:])

    def test_repinned_each_call(self, stub_factory):
        mpc = stub_mpc(stub_factory)

        mpc.solve(np.array([0.7, -0.2]))
        mpc.solve(np.array([0.1, 0.3]))

        call = stub_factory.created[0].calls[1]
        np.testing.assert_array_equal(call["lbx"][:2], [0.1, 0.3])
        np.testing.assert_array_equal(mpc.bounds["ubx"][:2], [0.1, 0.3])

    def test_returns_first_control_slot(self, stub_factory):
        mpc = stub_mpc(stub_factory)

        u = mpc.solve(np.array([0.7, -0.2]))

        # stub returns the zero guess + 0.01 on the first call
        np.testing.assert_allclose(u, [0.01])

    def test_wrong_state_length(self, stub_factory):
        from casmpc import DimensionError

        mpc = stub_mpc(stub_factory)

        with pytest.raises(DimensionError, match="x_current"):
            mpc.solve(np.array([1.0, 2.0, 3.0]))

        assert stub_factory.created[0].calls == []

    def test_casadi_prob(self, stub_factory):
        mpc = stub_mpc(stub_factory)
        prob = mpc.casadi_prob()

        assert set(prob) == {"x", "f", "g"}
        assert prob["x"].numel() == mpc.nlp.n_vars


class TestWarmStart:
    """Test warm-start caching."""

    def test_first_solve_is_cold(self, stub_factory):
        mpc = stub_mpc(stub_factory)

        assert not mpc.is_initialized
        mpc.solve(np.array([1.0, 0.0]))
        call = stub_factory.created[0].calls[0]

        assert not np.any(call["x0"])
        assert not np.any(call["lam_x0"])
        assert not np.any(call["lam_g0"])
        assert call["lam_g0"].shape == (mpc.nlp.n_constraints,)

    def test_second_solve_uses_cache(self, stub_factory):
        mpc = stub_mpc(stub_factory)

        mpc.solve(np.array([1.0, 0.0]))
        cached = mpc.warm_start
        first_iters = mpc.last_result.iterations

        mpc.solve(np.array([0.9, -0.1]))
        call = stub_factory.created[0].calls[1]

        np.testing.assert_array_equal(call["x0"], cached["x0"])
        np.testing.assert_array_equal(call["lam_x0"], cached["lam_x0"])
        np.testing.assert_array_equal(call["lam_g0"], cached["lam_g0"])
        assert mpc.last_result.iterations <= first_iters

    def test_cache_holds_latest_solution(self, stub_factory):
        mpc = stub_mpc(stub_factory)

        mpc.solve(np.array([1.0, 0.0]))
        mpc.solve(np.array([0.9, -0.1]))

        np.testing.assert_allclose(mpc.warm_start["lam_x0"], 0.2)
        np.testing.assert_allclose(mpc.warm_start["lam_g0"], 0.4)

    def test_warm_start_is_a_copy(self, stub_factory):
        mpc = stub_mpc(stub_factory)
        mpc.solve(np.array([1.0, 0.0]))

        mpc.warm_start["x0"][:] = 99.0

        assert not np.any(mpc.warm_start["x0"] == 99.0)

    def test_reset(self, stub_factory):
        mpc = stub_mpc(stub_factory)
        mpc.solve(np.array([1.0, 0.0]))

        mpc.reset_warm_start()
        mpc.solve(np.array([1.0, 0.0]))

        assert mpc.last_result.iterations == 10
        assert not np.any(stub_factory.created[0].calls[1]["x0"])

    def test_ipopt_warm_start_saves_iterations(self):
        """Re-solving from the cached optimum takes no more IPOPT iterations than a cold start."""
        from casmpc import MPC
        from casmpc.models import inverted_pendulum

        mpc = MPC(inverted_pendulum(horizon=20))
        x = np.array([0.4, 0.0])

        mpc.solve(x)
        cold_iters = mpc.last_result.iterations

        mpc.solve(x)
        warm_iters = mpc.last_result.iterations

        assert cold_iters > 0
        assert warm_iters <= cold_iters


class TestFailure:
    """Test behavior when the solver fails."""

    def test_failure_preserves_cache(self, stub_factory):
        from casmpc import InfeasibleProblem

        mpc = stub_mpc(stub_factory)
        mpc.solve(np.array([1.0, 0.0]))

        before = {k: v.tobytes() for k, v in mpc.warm_start.items()}
        last = mpc.last_result
        stub_factory.created[0].fail = True

        with pytest.raises(InfeasibleProblem):
            mpc.solve(np.array([5.0, 5.0]))

        after = {k: v.tobytes() for k, v in mpc.warm_start.items()}
        assert after == before
        assert mpc.last_result is last

    def test_recovers_from_cache(self, stub_factory):
        """The solve after a failure starts from the last good solution."""
        from casmpc import SolverError

        mpc = stub_mpc(stub_factory)
        mpc.solve(np.array([1.0, 0.0]))
        cached = mpc.warm_start["x0"]

        stub = stub_factory.created[0]
        stub.fail = True
        with pytest.raises(SolverError):
            mpc.solve(np.array([1.0, 0.0]))
        stub.fail = False

        mpc.solve(np.array([1.0, 0.0]))
        np.testing.assert_array_equal(stub.calls[2]["x0"], cached)

    def test_failure_before_first_success(self, stub_factory):
        from casmpc import MPC, InfeasibleProblem
        from casmpc.models import double_integrator

        factory = lambda nlp, name, config: stub_factory(nlp, name, config, fail=True)
        mpc = MPC(double_integrator(horizon=4), solver_factory=factory)

        with pytest.raises(InfeasibleProblem):
            mpc.solve(np.array([1.0, 0.0]))

        assert not mpc.is_initialized
        assert mpc.last_result is None

    def test_real_solver_failure_preserves_cache(self, ipopt_config):
        from casmpc import MPC, SolverError, merge_config
        from casmpc.models import inverted_pendulum

        mpc = MPC(inverted_pendulum(horizon=20), config=ipopt_config)
        mpc.solve(np.array([0.3, 0.0]))
        before = mpc.warm_start

        # same transcription, solver capped at one iteration
        mpc.solver = type(mpc.solver)(mpc.nlp, "ipopt", merge_config(ipopt_config, {"ipopt.max_iter": 1}))
        with pytest.raises(SolverError):
            mpc.solve(np.array([2.8, 1.0]))

        for key, value in mpc.warm_start.items():
            np.testing.assert_array_equal(value, before[key])


class TestSimulation:
    """Closed-loop behavior."""

    @pytest.mark.slow
    def test_double_integrator_converges(self):
        from casmpc import MPC
        from casmpc.models import double_integrator

        prob = double_integrator(horizon=20, dt=0.1)
        prob.set_control_bound(-1.0, 1.0)
        mpc = MPC(prob)

        sim = mpc.simulate(np.array([1.0, 0.0]), n_steps=80)

        assert sim["x"].shape == (81, 2)
        assert sim["u"].shape == (80, 1)
        assert np.all(np.abs(sim["u"]) <= 1.0 + 1e-6)
        assert np.linalg.norm(sim["x"][-1]) < 0.05
        assert sim["cost"][-1] < sim["cost"][0]

    @pytest.mark.slow
    def test_pendulum_stabilizes(self):
        from casmpc import MPC
        from casmpc.models import inverted_pendulum

        mpc = MPC(inverted_pendulum(horizon=30, dt=0.05))

        sim = mpc.simulate(np.array([0.5, 0.0]), n_steps=60)

        assert abs(sim["x"][-1, 0]) < 0.05
        assert np.all(np.abs(sim["u"]) <= 20.0 + 1e-6)

    def test_custom_plant_and_disturbance(self, ipopt_config):
        from casmpc import MPC
        from casmpc.models import double_integrator

        mpc = MPC(double_integrator(horizon=10), config=ipopt_config)
        plant_calls = []

        def plant(x, u):
            plant_calls.append((x.copy(), u.copy()))
            return mpc.nlp.step(x, u)

        disturbance = np.zeros((5, 2))
        disturbance[2] = [0.1, 0.0]

        sim = mpc.simulate(np.array([1.0, 0.0]), n_steps=5, plant=plant, disturbance=disturbance)

        assert len(plant_calls) == 5
        expected = mpc.nlp.step(sim["x"][2], sim["u"][2]) + [0.1, 0.0]
        np.testing.assert_allclose(sim["x"][3], expected)
