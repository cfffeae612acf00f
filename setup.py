"""setuptools setup for HabitFlow.

Install for development:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="HabitFlow",
    version="0.1.0",
    description="Habit time tracking with progress analytics and AI tips",
    packages=find_packages(include=["habitflow", "habitflow.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6>=6.5",
        "SQLAlchemy>=2.0",
        "supabase>=2.0",
        "requests>=2.31",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["habitflow=habitflow.__main__:main"],
    },
)
