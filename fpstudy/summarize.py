import json
import os
import sys

import numpy as np
import pandas as pd

GROUP = ['algo', 'size', 'precision', 'accumulation', 'kahan']


def load_runs(path='results/runs.csv'):
    df = pd.read_csv(path)
    # pull the accumulation policy back out of params_json (absent for gd/newton)
    params = df['params_json'].apply(json.loads)
    df['accumulation'] = params.apply(lambda p: p.get('accumulation', 'element'))
    df['kahan'] = params.apply(lambda p: bool(p.get('kahan', False)))
    return df


def summarize_runs(path='results/runs.csv'):
    df = load_runs(path)
    out = (df.groupby(GROUP, as_index=False)
             .agg(rel_error=('rel_error', 'mean'),
                  max_rel_error=('rel_error', 'max'),
                  converged_rate=('converged', 'mean'),
                  mean_iters=('iters', 'mean'),
                  n_nan=('n_nan', 'sum'),
                  n_inf=('n_inf', 'sum'),
                  runs=('rel_error', 'size')))
    # fp32 (same algo/size/policy) is the per-row baseline
    base = out[out.precision == 'fp32'][GROUP[:2] + GROUP[3:] + ['rel_error']]
    base = base.rename(columns={'rel_error': 'base_err'})
    out = out.merge(base, on=GROUP[:2] + GROUP[3:], how='left')

    def label(row):
        e = row['rel_error']; b = row['base_err']
        if row['n_nan'] > 0 or row['converged_rate'] < 1.0: return 'Risky'
        if np.isnan(b): return '—'
        if e <= max(1.5 * b, 1e-12): return 'Safe'
        if e <= 5e-2: return 'Borderline'
        return 'Risky'
    out['label'] = out.apply(label, axis=1)
    return out


if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'results/runs.csv'
    os.makedirs('results', exist_ok=True)
    s = summarize_runs(path)
    s.to_csv('results/summary.csv', index=False)
    print('Wrote results/summary.csv')
