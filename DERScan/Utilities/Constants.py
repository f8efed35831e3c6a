DERSCAN_VERSION = "0.3.0"
MAX_REGION_GAP = 0                     # gap allowed inside a position cluster
MAX_CLUSTER_GAP = 300                  # gap allowed between regions of one region cluster
SCALEFAC = 32                          # added to coverage before log2
DEFAULT_QUANTILE = 0.99                # quantile of observed stats used as default cutoff
SIGNIFICANT_CUT = (0.05, 0.10)         # p-value and q-value thresholds

# lambda grid for Storey's pi0 estimation
PI0_LAMBDAS = tuple(round(0.05 * i, 2) for i in range(1, 20))
SMOOTH_DF = 3
