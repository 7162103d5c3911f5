"""
Carbon estimation coefficients.
Values follow the Cloud Carbon Footprint (CCF) methodology for AWS.
"""

# Power Usage Effectiveness for AWS data centers
AWS_PUE = 1.135

# Average CPU utilization when nothing more specific is known
DEFAULT_UTILIZATION = 0.50

HOURS_PER_MONTH = 730.0

# Lambda: 1,792 MB of configured memory corresponds to one full vCPU
LAMBDA_MB_PER_VCPU = 1792.0

# Per-vCPU power draw used for Lambda (CCF AWS averages, watts)
LAMBDA_MIN_WATTS_PER_VCPU = 2.12
LAMBDA_MAX_WATTS_PER_VCPU = 4.5

# Graviton (arm64) draws roughly 20% less power for equivalent work
ARM64_EFFICIENCY_FACTOR = 0.80

# Storage power coefficients in watt-hours per terabyte-hour
SSD_POWER_COEFFICIENT = 1.2
HDD_POWER_COEFFICIENT = 0.65

# Embodied (manufacturing) emissions of one server, amortized over its lifetime
EMBODIED_CARBON_PER_SERVER_KG = 1000.0
SERVER_LIFESPAN_MONTHS = 48.0

GRAMS_PER_METRIC_TON = 1_000_000.0
GB_PER_TB = 1000.0

CARBON_UNIT = "gCO2e"

# Note attached to resources whose emissions live in shared, unmetered infrastructure
SHARED_INFRASTRUCTURE_NOTE = "shared infrastructure, not independently meterable"
