"""Nonlinear least-squares fitting of the curve ``y = exp(a*x^2 + b*x + c)``."""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass, field

import numpy as np

TRUE_PARAMS = (1.0, 2.0, 1.0)
INITIAL_PARAMS = (2.0, -1.0, 5.0)


@dataclass
class FitResult:
    """Outcome of a fit: final parameters, final cost and accepted-step costs."""

    params: np.ndarray
    cost: float
    iterations: int
    history: list[float] = field(default_factory=list)


def curve_model(params, x):
    """Evaluate ``exp(a*x^2 + b*x + c)`` for parameters ``(a, b, c)``."""
    a, b, c = params
    x = np.asarray(x, dtype=float)
    return np.exp(a * x * x + b * x + c)


def generate_samples(true_params=TRUE_PARAMS, count=100, sigma=1.0, seed=None):
    """Samples at ``x = i / 100`` with Gaussian noise of standard deviation ``sigma``."""
    if count <= 0:
        raise ValueError("count must be positive")
    if sigma < 0:
        raise ValueError("sigma must not be negative")
    rng = np.random.default_rng(seed)
    x = np.arange(count) / 100.0
    y = curve_model(true_params, x) + rng.normal(0.0, sigma, size=count)
    return x, y


def _prepare(x, y, initial, iterations, sigma):
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 1 or x.shape != y.shape or x.size == 0:
        raise ValueError("x and y must be non-empty 1-D arrays of equal length")
    params = np.asarray(initial, dtype=float)
    if params.shape != (3,):
        raise ValueError("initial must hold three parameters")
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    if sigma <= 0:
        raise ValueError("sigma must be positive")
    return x, y, params.copy(), 1.0 / (sigma * sigma)


def _linearize(params, x, y):
    f = curve_model(params, x)
    residual = y - f
    jacobian = np.column_stack([-x * x * f, -x * f, -f])
    return residual, jacobian


def _cost(params, x, y, weight):
    r = y - curve_model(params, x)
    return float(weight * (r @ r))


def gauss_newton_fit(x, y, initial=INITIAL_PARAMS, iterations=100, sigma=1.0):
    """Gauss-Newton iteration; stops once the cost no longer decreases."""
    x, y, params, weight = _prepare(x, y, initial, iterations, sigma)
    history: list[float] = []
    last_cost = 0.0
    for iteration in range(iterations):
        residual, jac = _linearize(params, x, y)
        cost = float(weight * (residual @ residual))
        hessian = weight * jac.T @ jac
        gradient = -weight * jac.T @ residual
        try:
            dx = np.linalg.solve(hessian, gradient)
        except np.linalg.LinAlgError:
            break
        if not np.all(np.isfinite(dx)):
            break
        if iteration > 0 and cost >= last_cost:
            break
        params = params + dx
        last_cost = cost
        history.append(cost)
    return FitResult(params, _cost(params, x, y, weight), len(history), history)


def levenberg_marquardt_fit(x, y, initial=INITIAL_PARAMS, iterations=50, sigma=1.0):
    """Levenberg-Marquardt with Marquardt scaling and adaptive damping."""
    x, y, params, weight = _prepare(x, y, initial, iterations, sigma)
    residual, jac = _linearize(params, x, y)
    cost = float(weight * (residual @ residual))
    history: list[float] = []
    damping = None
    growth = 2.0
    for _ in range(iterations):
        hessian = weight * jac.T @ jac
        gradient = -weight * jac.T @ residual
        if not np.all(np.isfinite(gradient)) or np.max(np.abs(gradient)) <= 1e-10:
            break
        if damping is None:
            damping = 1e-4 * float(np.max(np.diag(hessian)))
        try:
            dx = np.linalg.solve(hessian + damping * np.diag(np.diag(hessian)), gradient)
        except np.linalg.LinAlgError:
            damping *= growth
            growth *= 2.0
            continue
        if not np.all(np.isfinite(dx)):
            break
        candidate = params + dx
        new_cost = _cost(candidate, x, y, weight)
        if np.isfinite(new_cost) and new_cost < cost:
            linear = residual + jac @ dx
            predicted = cost - float(weight * (linear @ linear))
            ratio = (cost - new_cost) / predicted if predicted > 0 else 0.0
            history.append(cost)
            params, cost = candidate, new_cost
            damping *= max(1.0 / 3.0, 1.0 - (2.0 * ratio - 1.0) ** 3)
            growth = 2.0
            residual, jac = _linearize(params, x, y)
            if np.linalg.norm(dx) <= 1e-8 * (np.linalg.norm(params) + 1e-8):
                break
        else:
            damping *= growth
            growth *= 2.0
            if damping > 1e32:
                break
    return FitResult(params, cost, len(history), history)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Fit y = exp(a*x^2 + b*x + c) to noisy samples.")
    parser.add_argument("--method", choices=("gauss-newton", "levenberg-marquardt"), default="gauss-newton")
    parser.add_argument("--count", type=int, default=100)
    parser.add_argument("--sigma", type=float, default=1.0)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--iterations", type=int, default=None)
    args = parser.parse_args(argv)

    x, y = generate_samples(TRUE_PARAMS, args.count, args.sigma, args.seed)
    sigma = args.sigma if args.sigma > 0 else 1.0
    start = time.perf_counter()
    if args.method == "gauss-newton":
        result = gauss_newton_fit(x, y, INITIAL_PARAMS, args.iterations or 100, sigma)
    else:
        result = levenberg_marquardt_fit(x, y, INITIAL_PARAMS, args.iterations or 50, sigma)
    elapsed = time.perf_counter() - start

    for index, cost in enumerate(result.history):
        print(f"iteration {index} total cost: {cost}")
    print(f"solve time cost = {elapsed} seconds. ")
    a, b, c = result.params
    print(f"estimated abc = {a}, {b}, {c}")
    return 0