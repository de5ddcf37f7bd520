#!/usr/bin/env python3
import sys
import subprocess

def main():
    # use the current interpreter instead of hardcoding "python"
    py = sys.executable
    cfg = sys.argv[1] if len(sys.argv) > 1 else 'config.yaml'
    subprocess.check_call([py, '-m', 'fpstudy.main', '--config', cfg])
    subprocess.check_call([py, '-m', 'fpstudy.summarize'])
    subprocess.check_call([py, '-m', 'fpstudy.make_plots'])
    print("Done. See results/ (CSVs) and plots/ (PNGs).")

if __name__ == '__main__':
    main()
