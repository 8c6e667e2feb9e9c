"""
Hand-Eye Calibration Scripts

- compute_calibration: Solve hand-eye calibration from a saved sample file
"""
