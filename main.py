#!/usr/bin/env python
"""
Plotkeeper - market garden parcel and crop row tracker.

Main entry point for the application.

Usage
-----
    python main.py
"""

import sys


def main() -> int:
    """
    Main entry point for the Plotkeeper application.

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error).
    """
    from loguru import logger
    from PySide6.QtWidgets import QApplication
    import pyqtgraph as pg

    from plotkeeper import __version__

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level="DEBUG"
    )

    logger.info("Starting Plotkeeper...")

    # Configure PyQtGraph
    pg.setConfigOptions(
        imageAxisOrder='row-major',
        antialias=True,
    )

    # Create application
    app = QApplication(sys.argv)
    app.setApplicationName("Plotkeeper")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("Plotkeeper")

    # Set application style
    app.setStyle("Fusion")

    # Import and create main window
    from plotkeeper.gui.main_window import MainWindow

    window = MainWindow()
    window.show()

    logger.info("Application started successfully")

    # Run event loop
    exit_code = app.exec()

    logger.info(f"Application exited with code: {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
