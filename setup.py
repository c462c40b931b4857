from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="univ3-positions",
    version="0.1.0",
    author="Your Name",
    description="Open, inspect, rebalance and withdraw a Uniswap V3 liquidity position",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/univ3-positions",
    packages=find_packages(exclude=["tests", "tests.*", "results", "venv"]),
    package_data={"univ3_positions": ["*.json"]},
    python_requires=">=3.8",
    install_requires=[
        "web3>=7.0.0",
        "python-dotenv>=1.0.0",
        "eth-account>=0.13.0",
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "univ3-positions=univ3_positions.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
