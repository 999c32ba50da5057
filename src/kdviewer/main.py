"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Configures logging from the command line.
2. Instantiates the viewer state (Model).
3. Instantiates the Main Window (View), which creates the IndexController.
"""
import argparse
import logging
import sys
from typing import List, Optional

from PySide6.QtWidgets import QApplication

from kdviewer.config import MIN_NEIGHBOR_COUNT, MAX_NEIGHBOR_COUNT
from kdviewer.logging_config import setup_logging
from kdviewer.model.point_sources import ModelName
from kdviewer.model.state import ViewerState
from kdviewer.view.main_window import MainWindow


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="kdviewer", description="Interactive k-d tree point-cloud viewer.")
    parser.add_argument("--model", default=ModelName.CUBE.value,
                        choices=[m.value for m in ModelName], help="Built-in model shown at start-up.")
    parser.add_argument("--mesh", default=None, help="Mesh file to load instead of a built-in model.")
    parser.add_argument("-k", "--neighbors", type=int, default=None, help="Initial neighbor count.")
    parser.add_argument("--no-prune", action="store_true", help="Explore every subtree during k-NN search.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    args = parser.parse_args(argv)

    if args.neighbors is not None and not MIN_NEIGHBOR_COUNT <= args.neighbors <= MAX_NEIGHBOR_COUNT:
        parser.error(f"--neighbors must be between {MIN_NEIGHBOR_COUNT} and {MAX_NEIGHBOR_COUNT}")
    return args


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # 2. Create the Qt Application
    app = QApplication(sys.argv[:1])
    app.setApplicationName("kdviewer")

    # 3. Initialize the Data Model
    state = ViewerState(model=args.model, mesh_path=args.mesh, prune=not args.no_prune)
    if args.neighbors is not None:
        state.neighbor_count = args.neighbors

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(state)
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
