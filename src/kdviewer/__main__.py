"""Run with: python -m kdviewer"""
from kdviewer.main import main

if __name__ == "__main__":
    main()
