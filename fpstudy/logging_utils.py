import csv, os

CSV_HEADER = [
    "algo", "size", "precision", "seed",
    "params_json", "rel_error", "iters",
    "converged", "n_nan", "n_inf", "elapsed_ms",
]

def start_csv(path, header=CSV_HEADER):
    """Truncate `path` and write the header (one results file per driver run)."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, 'w', newline='') as f:
        csv.writer(f).writerow(header)

def write_row(path, header, row):
    new = not os.path.exists(path)
    with open(path, 'a', newline='') as f:
        w = csv.writer(f)
        if new: w.writerow(header)
        w.writerow(row)
