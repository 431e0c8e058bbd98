import matplotlib

# charts are only written to files
matplotlib.use("Agg")
