"""
Regression diagnostic threshold constants.

Citations:
- Jarque, C.M. & Bera, A.K. (1987). A test for normality of observations
  and regression residuals. Int. Statistical Review, 55(2), 163-172.
  Standard alpha = 0.05.
- Breusch, T.S. & Pagan, A.R. (1979). A simple test for
  heteroscedasticity and random coefficient variation. Econometrica,
  47(5), 1287-1294. Standard alpha = 0.05.
- Belsley, D.A., Kuh, E. & Welsch, R.E. (1980). Regression Diagnostics.
  Condition numbers above 30 indicate moderate-to-strong collinearity.
- O'Brien, R.M. (2007). A caution regarding rules of thumb for variance
  inflation factors. Quality & Quantity, 41, 673-690. VIF > 10 is the
  common warning level.
"""

# Jarque-Bera test p-value threshold for residual normality.
JB_P_THRESHOLD = 0.05

# Breusch-Pagan test p-value threshold for heteroskedasticity.
BP_P_THRESHOLD = 0.05

# Variance inflation factor above which a regressor is flagged as collinear.
VIF_WARNING = 10.0

# Condition number of the standardized design matrix.
CONDITION_NUMBER_WARNING = 30.0

# R-squared threshold below which model fit is reported as weak.
# Cross-country growth regressions rarely exceed 0.5, so this is low.
R_SQUARED_WARNING = 0.1

# Observations per estimated parameter below which estimates are flagged.
MIN_OBS_PER_PARAMETER = 5
