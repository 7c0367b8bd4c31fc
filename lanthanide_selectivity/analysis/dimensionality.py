"""
Dimensionality Reduction

Principal Component Analysis computed directly from the covariance matrix.

Steps:
1. Standardize features (column mean, sample std; constant features keep std 1)
2. Covariance matrix of the standardized data
3. Leading eigenpairs by power iteration with deflation
4. Projection, explained variance and loadings

Only as many components as requested are extracted. The starting vector of
each power iteration comes from a seeded generator, so results are
reproducible for a fixed random_state.
"""

from typing import Optional, Tuple, List, Dict, Any, Union, Sequence
from dataclasses import dataclass
import warnings

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state


MatrixLike = Union[np.ndarray, pd.DataFrame, Sequence[Sequence[float]]]

EIGENVALUE_FLOOR = 1e-10


@dataclass(frozen=True)
class PCAResult:
    """
    Container for PCA results.

    Attributes:
        components: Eigenvectors, shape (k, p)
        explained_variance: Eigenvalues, shape (k,)
        explained_variance_ratio: Eigenvalue / sum of extracted eigenvalues
        cumulative_variance_ratio: Running sum of the ratios
        transformed_data: Projected samples, shape (n, k)
        loadings: components scaled by sqrt(eigenvalue), shape (k, p)
        mean: Feature means used for standardization, shape (p,)
        std: Feature standard deviations used for standardization, shape (p,)
        n_components: k
    """
    components: np.ndarray
    explained_variance: np.ndarray
    explained_variance_ratio: np.ndarray
    cumulative_variance_ratio: np.ndarray
    transformed_data: np.ndarray
    loadings: np.ndarray
    mean: np.ndarray
    std: np.ndarray
    n_components: int


@dataclass(frozen=True)
class FeatureContribution:
    name: str
    loading: float
    contribution: float  # squared loading


def _as_matrix(data: MatrixLike) -> np.ndarray:
    """Convert input to a 2D float array, rejecting ragged rows."""
    if isinstance(data, pd.DataFrame):
        return data.to_numpy(dtype=float)

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise ValueError(f"Expected a 2D matrix, got {data.ndim} dimensions")
        return data.astype(float)

    rows = [np.asarray(row, dtype=float).ravel() for row in data]
    if not rows:
        return np.zeros((0, 0))

    lengths = {len(row) for row in rows}
    if len(lengths) > 1:
        raise ValueError(f"All rows must have the same length, got lengths {sorted(lengths)}")

    return np.vstack(rows)


def _drop_nan_rows(X: np.ndarray) -> np.ndarray:
    if X.size == 0:
        return X

    nan_rows = np.any(np.isnan(X), axis=1)
    if np.any(nan_rows):
        warnings.warn(
            f"{int(np.sum(nan_rows))} samples contain NaN values and will be removed for PCA. "
            f"Consider imputing missing values first."
        )
        X = X[~nan_rows]
    return X


def standardize(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Standardize columns to zero mean and unit sample variance.

    Args:
        X: Data matrix (n_samples, n_features), n >= 2

    Returns:
        Tuple of (standardized, mean, std); zero std is replaced by 1
    """
    mean = X.mean(axis=0)
    std = X.std(axis=0, ddof=1)
    std = np.where(std == 0, 1.0, std)
    return (X - mean) / std, mean, std


def covariance_matrix(Z: np.ndarray) -> np.ndarray:
    """
    Covariance of already centered data.

    Returns:
        (p, p) symmetric matrix, or an empty (0, 0) array when n < 2 or p = 0
    """
    n, p = Z.shape
    if n < 2 or p == 0:
        return np.zeros((0, 0))

    cov = np.zeros((p, p))
    for i in range(p):
        for j in range(i, p):
            cov[i, j] = np.dot(Z[:, i], Z[:, j]) / (n - 1)
            cov[j, i] = cov[i, j]
    return cov


def power_iteration(
    matrix: np.ndarray,
    random_state: Any = None,
    n_iterations: int = 100,
    tolerance: float = 1e-10
) -> Tuple[float, np.ndarray]:
    """
    Dominant eigenpair of a symmetric matrix.

    Args:
        matrix: Symmetric (p, p) matrix
        random_state: Seed, RandomState or None for the starting vector
        n_iterations: Maximum iterations
        tolerance: Stop when the unit vector moves less than this

    Returns:
        Tuple of (eigenvalue, unit eigenvector); eigenvalue is the Rayleigh
        quotient at the last iteration
    """
    rng = check_random_state(random_state)
    p = matrix.shape[0]

    v = rng.uniform(-0.5, 0.5, size=p)
    v = v / np.linalg.norm(v)

    eigenvalue = 0.0
    for _ in range(n_iterations):
        w = matrix @ v
        eigenvalue = float(w @ v)

        norm = np.linalg.norm(w)
        if norm == 0:
            break

        v_next = w / norm
        displacement = np.linalg.norm(v_next - v)
        v = v_next

        if displacement < tolerance:
            break

    return eigenvalue, v


def deflate_matrix(matrix: np.ndarray, eigenvalue: float, eigenvector: np.ndarray) -> np.ndarray:
    """Remove an eigenpair: M - λ v vᵀ."""
    return matrix - eigenvalue * np.outer(eigenvector, eigenvector)


def _empty_result(n: int, p: int) -> PCAResult:
    return PCAResult(
        components=np.zeros((0, p)),
        explained_variance=np.zeros(0),
        explained_variance_ratio=np.zeros(0),
        cumulative_variance_ratio=np.zeros(0),
        transformed_data=np.zeros((n, 0)),
        loadings=np.zeros((0, p)),
        mean=np.zeros(p),
        std=np.ones(p),
        n_components=0
    )


def perform_pca(
    data: MatrixLike,
    n_components: Optional[int] = None,
    random_state: Any = 42
) -> PCAResult:
    """
    Perform PCA on a data matrix.

    Args:
        data: Samples x features (rows containing NaN are dropped with a warning)
        n_components: Components to extract (None or <= 0 = min(n - 1, p);
                      clamped to p)
        random_state: Seed for the power iteration starting vectors

    Returns:
        PCAResult. Fewer than 2 samples or no features give an empty result,
        and extraction stops early once an eigenvalue falls below 1e-10.
    """
    X = _drop_nan_rows(_as_matrix(data))
    n, p = X.shape

    if n < 2 or p == 0:
        return _empty_result(n, p)

    Z, mean, std = standardize(X)
    cov = covariance_matrix(Z)

    if n_components is None or n_components <= 0:
        k = min(n - 1, p)
    else:
        k = min(n_components, p)

    rng = check_random_state(random_state)

    eigenvalues: List[float] = []
    eigenvectors: List[np.ndarray] = []
    current = cov

    for _ in range(k):
        eigenvalue, eigenvector = power_iteration(current, random_state=rng)
        if eigenvalue < EIGENVALUE_FLOOR:
            break

        eigenvalues.append(eigenvalue)
        eigenvectors.append(eigenvector)
        current = deflate_matrix(current, eigenvalue, eigenvector)

    if not eigenvalues:
        return PCAResult(
            components=np.zeros((0, p)),
            explained_variance=np.zeros(0),
            explained_variance_ratio=np.zeros(0),
            cumulative_variance_ratio=np.zeros(0),
            transformed_data=np.zeros((n, 0)),
            loadings=np.zeros((0, p)),
            mean=mean,
            std=std,
            n_components=0
        )

    components = np.vstack(eigenvectors)
    explained_variance = np.array(eigenvalues)

    ratio = explained_variance / explained_variance.sum()
    cumulative = np.minimum(np.cumsum(ratio), 1.0)

    loadings = components * np.sqrt(explained_variance)[:, np.newaxis]

    return PCAResult(
        components=components,
        explained_variance=explained_variance,
        explained_variance_ratio=ratio,
        cumulative_variance_ratio=cumulative,
        transformed_data=Z @ components.T,
        loadings=loadings,
        mean=mean,
        std=std,
        n_components=len(eigenvalues)
    )


def transform_data(new_data: MatrixLike, result: PCAResult) -> np.ndarray:
    """
    Project new samples with a fitted PCA.

    Standardizes with the training mean and std, then projects on the
    stored components.
    """
    X = _as_matrix(new_data)
    if X.size == 0:
        return np.zeros((len(X), result.n_components))

    Z = (X - result.mean) / result.std
    return Z @ result.components.T


def get_top_features(
    result: PCAResult,
    feature_names: Sequence[str],
    top_n: int = 5
) -> List[List[FeatureContribution]]:
    """
    Top contributing features per component.

    Args:
        result: Fitted PCAResult
        feature_names: Names per feature column (missing names become 'Feature j')
        top_n: Features kept per component

    Returns:
        One list per component, sorted by |loading| descending
    """
    top = []
    for component_loadings in result.loadings:
        contributions = [
            FeatureContribution(
                name=feature_names[j] if j < len(feature_names) else f"Feature {j}",
                loading=float(loading),
                contribution=float(loading ** 2)
            )
            for j, loading in enumerate(component_loadings)
        ]
        contributions.sort(key=lambda c: abs(c.loading), reverse=True)
        top.append(contributions[:top_n])
    return top


def correlation_matrix(data: MatrixLike) -> np.ndarray:
    """Pearson correlation matrix between feature columns."""
    X = _as_matrix(data)
    if X.shape[0] < 2 or X.shape[1] == 0:
        return np.zeros((0, 0))

    Z, _, _ = standardize(X)
    return covariance_matrix(Z)


class PCAReducer:
    """
    Principal Component Analysis.

    Object front for perform_pca() with the usual fit/transform interface.

    Provides:
    - Explained variance analysis
    - Feature loadings (contribution of each feature to components)
    - Optimal component selection based on variance threshold
    """

    def __init__(
        self,
        n_components: Optional[int] = 2,
        random_state: Any = 42
    ):
        """
        Initialize PCA.

        Args:
            n_components: Number of principal components (None = min(n - 1, p))
            random_state: Random seed
        """
        self.n_components = n_components
        self.random_state = random_state

        self._result: Optional[PCAResult] = None
        self._feature_names: Optional[List[str]] = None
        self._is_fitted = False

    def _prepare_data(self, X: MatrixLike) -> Tuple[np.ndarray, List[str]]:
        """Extract numeric columns and feature names."""
        if isinstance(X, pd.DataFrame):
            numeric_cols = [col for col in X.columns if pd.api.types.is_numeric_dtype(X[col])]
            return X[numeric_cols].to_numpy(dtype=float), [str(c) for c in numeric_cols]

        X_array = _as_matrix(X)
        feature_names = [f"feature_{i}" for i in range(X_array.shape[1])]
        return X_array, feature_names

    @property
    def result(self) -> PCAResult:
        if not self._is_fitted:
            raise ValueError("PCAReducer must be fitted first")
        return self._result

    def fit(self, X: MatrixLike, y: Optional[np.ndarray] = None) -> 'PCAReducer':
        """
        Fit PCA to data.

        Args:
            X: Feature matrix
            y: Ignored

        Returns:
            self
        """
        X_array, self._feature_names = self._prepare_data(X)
        self._result = perform_pca(X_array, self.n_components, self.random_state)
        self._is_fitted = True
        return self

    def transform(self, X: MatrixLike) -> np.ndarray:
        """
        Transform data to principal components.

        Args:
            X: Feature matrix

        Returns:
            Reduced feature matrix (n_samples, n_components)
        """
        X_array, _ = self._prepare_data(X)
        return transform_data(X_array, self.result)

    def fit_transform(self, X: MatrixLike, y: Optional[np.ndarray] = None) -> np.ndarray:
        """Fit and transform."""
        self.fit(X, y)
        return self.transform(X)

    def get_component_names(self) -> List[str]:
        """Get component names (PC1, PC2, ...)."""
        return [f"PC{i+1}" for i in range(self.result.n_components)]

    def get_explained_variance(self) -> np.ndarray:
        """Explained variance ratio for each component."""
        return self.result.explained_variance_ratio

    def get_cumulative_variance(self) -> np.ndarray:
        """Cumulative explained variance ratio."""
        return self.result.cumulative_variance_ratio

    def get_loadings(self, feature_names: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Get feature loadings for each component.

        Args:
            feature_names: Feature names (None = names seen during fit)

        Returns:
            DataFrame with features as rows and components as columns
        """
        if feature_names is None:
            feature_names = self._feature_names

        return pd.DataFrame(
            self.result.loadings.T,
            index=feature_names,
            columns=self.get_component_names()
        )

    def get_top_features_per_component(
        self,
        n_features: int = 10,
        feature_names: Optional[List[str]] = None
    ) -> Dict[str, List[Tuple[str, float]]]:
        """
        Get top contributing features for each component.

        Args:
            n_features: Number of top features per component
            feature_names: Feature names

        Returns:
            Dict mapping component name -> list of (feature, loading) tuples
        """
        if feature_names is None:
            feature_names = self._feature_names

        top = get_top_features(self.result, feature_names, top_n=n_features)
        return {
            name: [(c.name, c.loading) for c in contributions]
            for name, contributions in zip(self.get_component_names(), top)
        }

    def select_n_components(self, X: MatrixLike, variance_threshold: float = 0.95) -> int:
        """
        Determine number of components needed to explain variance threshold.

        Args:
            X: Feature matrix
            variance_threshold: Desired cumulative variance (e.g., 0.95 for 95%)

        Returns:
            Number of components needed
        """
        X_array, _ = self._prepare_data(X)
        full = perform_pca(X_array, None, self.random_state)

        cumvar = full.cumulative_variance_ratio
        if len(cumvar) == 0:
            return 0

        n_components = int(np.searchsorted(cumvar, variance_threshold)) + 1
        return min(n_components, len(cumvar))

    def prepare_variance_plot_data(
        self,
        X: MatrixLike,
        max_components: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Prepare data for a scree plot.

        Args:
            X: Feature matrix
            max_components: Maximum components to include (None = all)

        Returns:
            DataFrame with columns:
            - component: Component number
            - explained_variance: Variance ratio explained by this component
            - cumulative_variance: Cumulative variance ratio explained
        """
        X_array, _ = self._prepare_data(X)
        full = perform_pca(X_array, max_components, self.random_state)

        return pd.DataFrame({
            'component': range(1, full.n_components + 1),
            'explained_variance': full.explained_variance_ratio,
            'cumulative_variance': full.cumulative_variance_ratio
        })

    def summary(self) -> str:
        """Generate summary of PCA results."""
        if not self._is_fitted:
            return "PCAReducer: Not fitted yet"

        lines = [
            "PCA Summary",
            "=" * 40,
            f"Number of components: {self.result.n_components}",
            f"Random state: {self.random_state}",
            "",
            "Explained Variance:",
        ]

        variance = self.get_explained_variance()
        cumvar = self.get_cumulative_variance()

        for i, (var, cum) in enumerate(zip(variance, cumvar)):
            lines.append(f"  PC{i+1}: {var:.4f} ({var*100:.1f}%) | Cumulative: {cum:.4f} ({cum*100:.1f}%)")

        if len(cumvar) > 0:
            lines.append(f"\nTotal variance explained: {cumvar[-1]*100:.1f}%")

        return "\n".join(lines)


def create_reducer_from_config(config: Dict) -> PCAReducer:
    """
    Create a PCAReducer from a configuration dictionary.

    Args:
        config: Configuration with an analysis.pca section

    Returns:
        PCAReducer instance
    """
    pca_config = config.get('analysis', {}).get('pca', {})

    return PCAReducer(
        n_components=pca_config.get('n_components', 2),
        random_state=pca_config.get('random_state', 42)
    )
