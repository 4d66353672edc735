"""Static pattern tables for the math problem classifier.

Every table in this module is built once at import time and never mutated.
Regular expressions are compiled here so that a broken pattern fails the
process on startup instead of failing individual classifications.

Subject order in ``SUBJECT_ORDER`` is significant: when two subjects reach
the same top score, the one declared first wins.

Patterns that open with a digit quantifier are prefixed with ``(?<!\d)`` so
that a search starts at most once per digit run; long runs of digits stay
linear.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Pattern, Tuple

from tutor_api.models.classification import GradeLevelName, Subject


SUBJECT_ORDER: Tuple[Subject, ...] = (
    "algebra",
    "geometry",
    "calculus",
    "trigonometry",
    "statistics",
    "arithmetic",
)

DEFAULT_SUBJECT: Subject = "arithmetic"


@dataclass(frozen=True)
class SubjectPattern:
    """Vocabulary and notation that identify one subject."""

    subject: Subject
    keywords: Tuple[str, ...]  # lower-case substrings
    symbols: Pattern[str]  # tested once against the original-case text
    structures: Tuple[Pattern[str], ...]  # each tested once, +1 per match


@dataclass(frozen=True)
class GradeLevelComplexity:
    """Complexity ceilings for a grade band. Documentation only, not scored."""

    max_variables: int
    max_degree: int
    max_steps: int
    advanced_operations: bool


@dataclass(frozen=True)
class GradeLevelProfile:
    level: GradeLevelName
    grade_range: Tuple[int, int]
    topics: Tuple[str, ...]
    complexity: GradeLevelComplexity


@dataclass(frozen=True)
class WeightedIndicator:
    """A regex worth a fixed number of points when it matches at least once."""

    pattern: Pattern[str]
    points: int
    label: str


# ---------------------------------------------------------------------------
# Subject patterns
# ---------------------------------------------------------------------------

_ALGEBRA = SubjectPattern(
    subject="algebra",
    keywords=(
        "solve for x", "equation", "variable", "linear", "quadratic", "polynomial",
        "factor", "expand", "simplify", "expression", "inequality", "system of equations",
        "slope", "y-intercept", "function", "domain", "range", "graph",
    ),
    symbols=re.compile(r"[xy]|[a-z]\s*=|[a-z]\^|solve\s+for|linear|quadratic", re.IGNORECASE),
    structures=(
        re.compile(r"(?<!\d)\d*[a-z]\s*[+\-*/^]\s*\d*"),  # variable with an operator
        re.compile(r"[a-z]\s*=\s*\d+"),            # variable assignment
        re.compile(r"\([a-z]\s*[+\-]\s*\d+\)"),    # (x + 3)
        re.compile(r"[a-z]\^[0-9]"),               # x^2
    ),
)

_GEOMETRY = SubjectPattern(
    subject="geometry",
    keywords=(
        "triangle", "circle", "rectangle", "square", "polygon", "angle", "area",
        "perimeter", "volume", "surface area", "radius", "diameter", "circumference",
        "parallel", "perpendicular", "congruent", "similar", "theorem", "proof",
        "coordinate", "distance", "midpoint", "slope", "pythagorean",
    ),
    symbols=re.compile(r"°|∠|△|⊥|∥|≅|∼|π"),
    structures=(
        re.compile(r"(?<!\d)\d+\s*°"),
        re.compile(r"area\s*=|perimeter\s*=|volume\s*=", re.IGNORECASE),
        re.compile(r"(?<!\d)\d+\s*(cm|mm|m|ft|in|units)"),
        re.compile(r"radius|diameter|circumference", re.IGNORECASE),
    ),
)

_CALCULUS = SubjectPattern(
    subject="calculus",
    keywords=(
        "derivative", "integral", "limit", "continuous", "discontinuous",
        "differentiate", "integrate", "chain rule", "product rule", "quotient rule",
        "optimization", "maximum", "minimum", "critical point", "inflection",
        "convergence", "divergence", "series", "sequence",
    ),
    # Written-out operators count as notation: OCR output often spells them.
    symbols=re.compile(r"∫|∂|∇|d/dx|lim|∞|∑|∏|(?i:derivative|antiderivative|integral)"),
    structures=(
        re.compile(r"d/d[a-z]"),
        re.compile(r"∫.*d[a-z]"),
        re.compile(r"lim.*→"),
        re.compile(r"[a-z]'"),  # f'
    ),
)

_TRIGONOMETRY = SubjectPattern(
    subject="trigonometry",
    keywords=(
        "sine", "cosine", "tangent", "sin", "cos", "tan", "cot", "sec", "csc",
        "radian", "degree", "unit circle", "periodic", "amplitude", "period",
        "phase shift", "frequency", "inverse", "identity",
    ),
    symbols=re.compile(r"sin|cos|tan|cot|sec|csc|θ|φ|α|β", re.IGNORECASE),
    structures=(
        re.compile(r"sin\(|cos\(|tan\(", re.IGNORECASE),
        re.compile(r"(?<!\d)\d+\s*°|(?<!\d)\d+\s*rad"),
        re.compile(r"π/\d+|(?<!\d)\d*π"),
    ),
)

_STATISTICS = SubjectPattern(
    subject="statistics",
    keywords=(
        "mean", "median", "mode", "range", "variance", "standard deviation",
        "probability", "distribution", "normal", "binomial", "poisson",
        "correlation", "regression", "hypothesis", "confidence interval",
        "sample", "population", "z-score", "t-test",
    ),
    symbols=re.compile("μ|σ|χ²|∑|x̄|p\\(|P\\("),
    structures=(
        re.compile(r"(?<!\d)\d+%|(?<!\d)\d+\.\d+%"),
        re.compile(r"probability|P\(", re.IGNORECASE),
        re.compile(r"mean|median|mode|std", re.IGNORECASE),
    ),
)

_ARITHMETIC = SubjectPattern(
    subject="arithmetic",
    keywords=(
        "add", "subtract", "multiply", "divide", "sum", "difference", "product",
        "quotient", "fraction", "decimal", "percent", "ratio", "proportion",
        "order of operations", "pemdas", "round", "estimate",
    ),
    symbols=re.compile(r"\+|-|×|÷|\*|/|%"),
    structures=(
        re.compile(r"^\d+\s*[+\-×÷*/]\s*\d+"),  # 125 + 67
        re.compile(r"(?<!\d)\d+/\d+"),
        re.compile(r"(?<!\d)\d+\.\d+"),
        re.compile(r"(?<!\d)\d+%"),
    ),
)

SUBJECT_PATTERNS: Mapping[Subject, SubjectPattern] = MappingProxyType({
    p.subject: p
    for p in (_ALGEBRA, _GEOMETRY, _CALCULUS, _TRIGONOMETRY, _STATISTICS, _ARITHMETIC)
})


# ---------------------------------------------------------------------------
# Difficulty
# ---------------------------------------------------------------------------

SUBJECT_BASE_DIFFICULTY: Mapping[str, int] = MappingProxyType({
    "arithmetic": 2,
    "algebra": 4,
    "geometry": 5,
    "trigonometry": 6,
    "statistics": 6,
    "calculus": 8,
})

DEFAULT_BASE_DIFFICULTY = 3

DIFFICULTY_INDICATORS: Tuple[WeightedIndicator, ...] = (
    WeightedIndicator(re.compile(r"\^[3-9]|\^[0-9]{2}|[³⁴⁵⁶⁷⁸⁹]"), 2, "high exponent"),
    WeightedIndicator(re.compile(r"√|∛|∜"), 1, "root"),
    WeightedIndicator(re.compile(r"∫|∂|lim"), 3, "calculus operator"),
    WeightedIndicator(re.compile(r"sin|cos|tan", re.IGNORECASE), 1, "trig function"),
    WeightedIndicator(re.compile(r"log|ln", re.IGNORECASE), 2, "logarithm"),
    WeightedIndicator(re.compile(r"matrix|determinant", re.IGNORECASE), 2, "matrix"),
    WeightedIndicator(re.compile(r"system.*equation", re.IGNORECASE), 1, "system of equations"),
    WeightedIndicator(re.compile(r"optimization|maximize|minimize", re.IGNORECASE), 2, "optimization"),
)

# (word count threshold, points); thresholds are cumulative
DIFFICULTY_LENGTH_STEPS: Tuple[Tuple[int, int], ...] = ((50, 1), (100, 1))

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10


# ---------------------------------------------------------------------------
# Grade level
# ---------------------------------------------------------------------------

GRADE_LEVEL_PROFILES: Mapping[GradeLevelName, GradeLevelProfile] = MappingProxyType({
    "middleSchool": GradeLevelProfile(
        level="middleSchool",
        grade_range=(6, 8),
        topics=(
            "basic algebra", "linear equations", "simple geometry", "fractions",
            "decimals", "percentages", "ratios", "proportions", "basic statistics",
            "area", "perimeter", "volume of basic shapes", "coordinate plane",
        ),
        complexity=GradeLevelComplexity(
            max_variables=2, max_degree=2, max_steps=5, advanced_operations=False,
        ),
    ),
    "highSchool": GradeLevelProfile(
        level="highSchool",
        grade_range=(9, 12),
        topics=(
            "advanced algebra", "quadratic equations", "polynomials", "trigonometry",
            "advanced geometry", "pre-calculus", "calculus", "statistics",
            "logarithms", "exponentials", "complex numbers", "matrices",
        ),
        complexity=GradeLevelComplexity(
            max_variables=5, max_degree=4, max_steps=10, advanced_operations=True,
        ),
    ),
})

HIGH_SCHOOL_SUBJECTS = frozenset({"calculus", "trigonometry", "statistics"})
HIGH_SCHOOL_DIFFICULTY = 7
ADVANCED_DIFFICULTY = 5

ADVANCED_MIDDLE_SCHOOL_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"quadratic|polynomial", re.IGNORECASE),
    re.compile(r"system.*equation", re.IGNORECASE),
    re.compile(r"coordinate.*plane", re.IGNORECASE),
    re.compile(r"slope.*intercept", re.IGNORECASE),
)


# ---------------------------------------------------------------------------
# Complexity
# ---------------------------------------------------------------------------

VARIABLE_CHAR_PATTERN = re.compile(r"[a-z]")
OPERATION_CHAR_PATTERN = re.compile(r"[+\-*/^=<>]")

ADVANCED_CONCEPTS: Tuple[WeightedIndicator, ...] = (
    WeightedIndicator(re.compile(r"derivative|integral"), 2, "calculus concepts"),
    WeightedIndicator(re.compile(r"matrix|determinant"), 2, "linear algebra"),
    WeightedIndicator(re.compile(r"probability|statistics"), 2, "statistical analysis"),
    WeightedIndicator(re.compile(r"optimization|constraint"), 2, "optimization problems"),
    WeightedIndicator(re.compile(r"proof|theorem"), 2, "mathematical proofs"),
)

MULTIPLE_VARIABLES_THRESHOLD = 5
MULTIPLE_OPERATIONS_THRESHOLD = 10
LENGTHY_PROBLEM_WORDS = 100
MAX_COMPLEXITY_SCORE = 10
BASIC_PROBLEM_FACTOR = "basic problem"


# ---------------------------------------------------------------------------
# Subject catalogue (served by GET /api/classification/subjects)
# ---------------------------------------------------------------------------

SUBJECT_CATALOGUE: Mapping[Subject, Mapping[str, object]] = MappingProxyType({
    "algebra": MappingProxyType({
        "name": "Algebra",
        "description": "Equations, variables, functions, and algebraic expressions",
        "typicalGrades": (6, 7, 8, 9, 10, 11, 12),
        "examples": ("Solve for x: 2x + 5 = 15", "Factor: x² - 9", "Graph: y = 2x + 3"),
    }),
    "geometry": MappingProxyType({
        "name": "Geometry",
        "description": "Shapes, angles, area, volume, and spatial relationships",
        "typicalGrades": (7, 8, 9, 10, 11),
        "examples": ("Find the area of a triangle", "Calculate circumference", "Prove triangle congruence"),
    }),
    "calculus": MappingProxyType({
        "name": "Calculus",
        "description": "Derivatives, integrals, limits, and advanced analysis",
        "typicalGrades": (11, 12, 13, 14),
        "examples": ("Find derivative of f(x) = x²", "Evaluate ∫x dx", "Calculate lim(x→0) sin(x)/x"),
    }),
    "trigonometry": MappingProxyType({
        "name": "Trigonometry",
        "description": "Sine, cosine, tangent, and angular relationships",
        "typicalGrades": (9, 10, 11, 12),
        "examples": ("Find sin(30°)", "Solve triangle using law of cosines", "Graph y = sin(x)"),
    }),
    "statistics": MappingProxyType({
        "name": "Statistics",
        "description": "Data analysis, probability, and statistical inference",
        "typicalGrades": (8, 9, 10, 11, 12),
        "examples": ("Calculate mean and median", "Find probability", "Interpret correlation"),
    }),
    "arithmetic": MappingProxyType({
        "name": "Arithmetic",
        "description": "Basic operations, fractions, decimals, and percentages",
        "typicalGrades": (1, 2, 3, 4, 5, 6, 7, 8),
        "examples": ("125 + 67", "Convert 3/4 to decimal", "Find 20% of 150"),
    }),
})
