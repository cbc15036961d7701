"""
Regression Trainer and Point Predictor.

Ordinary least squares via the normal equation:
    w = (X^T X)^{-1} X^T y

A constant column is appended for the bias term.
"""

import logging
from collections.abc import Sequence

import numpy as np

from clinicast.core.domain.errors import MalformedInputError, SingularMatrixError
from clinicast.core.domain.models import RegressionModel
from clinicast.core.domain.results import PointPrediction
from clinicast.core.numerics import linalg, stats

logger = logging.getLogger(__name__)

PAIN_DOMAIN = (0.0, 10.0)
Z_95 = 1.96


def train(
    features: Sequence[Sequence[float]],
    targets: Sequence[float],
    feature_names: Sequence[str],
) -> RegressionModel:
    """
    Fit an OLS model.

    Degraded paths return a defined model instead of raising:
    - no rows or no columns: all-zero model
    - singular X^T X: zero weights, bias = mean(targets), r_squared = 0

    Raises:
        MalformedInputError: ragged rows or mismatched lengths
    """
    n = len(features)
    p = len(features[0]) if n else len(feature_names)
    names = list(feature_names)

    if any(len(row) != p for row in features):
        raise MalformedInputError("Feature rows have inconsistent width")
    if len(targets) != n:
        raise MalformedInputError(f"Expected {n} targets, got {len(targets)}")
    if len(names) != p:
        raise MalformedInputError(f"Expected {p} feature names, got {len(names)}")

    if n == 0 or p == 0:
        logger.warning(f"Training on empty dataset (rows={n}, features={p}); returning zero model")
        return RegressionModel(weights=[0.0] * p, bias=0.0, r_squared=0.0, feature_names=names, residual_std_dev=0.0)

    x = np.hstack([np.asarray(features, dtype=float), np.ones((n, 1))])
    y = np.asarray(targets, dtype=float)

    xtx = x.T @ x
    xty = x.T @ y

    try:
        xtx_inv = linalg.invert(xtx)
    except SingularMatrixError:
        logger.warning(f"Singular design matrix ({n}x{p}); falling back to mean-only model")
        return RegressionModel(
            weights=[0.0] * p,
            bias=stats.mean(targets),
            r_squared=0.0,
            feature_names=names,
            residual_std_dev=stats.std_dev(targets),
        )

    w = xtx_inv @ xty
    weights = [float(v) for v in w[:p]]
    bias = float(w[p])

    predictions = x[:, :p] @ w[:p] + bias
    residuals = y - predictions
    ss_res = float(np.sum(residuals ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0

    model = RegressionModel(
        weights=weights,
        bias=bias,
        r_squared=max(0.0, r_squared),
        feature_names=names,
        residual_std_dev=stats.std_dev(residuals.tolist()),
    )
    logger.debug(f"Trained OLS model on {n} rows: r_squared={model.r_squared:.4f}")
    return model


def predict(
    model: RegressionModel,
    features: Sequence[float],
    domain: tuple[float, float] = PAIN_DOMAIN,
) -> PointPrediction:
    """
    Apply a model to one feature vector.

    The value and the 1.96 x residual-sd band are rounded to one decimal and
    clamped to ``domain``.
    """
    if len(features) != len(model.weights):
        raise MalformedInputError(f"Expected {len(model.weights)} features, got {len(features)}")

    low, high = domain
    raw = sum(f * w for f, w in zip(features, model.weights)) + model.bias
    margin = Z_95 * model.residual_std_dev

    return PointPrediction(
        value=stats.clamp(stats.round_to(raw, 1), low, high),
        lower=stats.clamp(stats.round_to(raw - margin, 1), low, high),
        upper=stats.clamp(stats.round_to(raw + margin, 1), low, high),
    )
