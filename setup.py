from setuptools import find_packages, setup

# Read the long description from README.md
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

if __name__ == "__main__":
    setup(
        name="easymip",
        version="0.1.0",
        description="An easy to use MILP modeling layer backed by OR-Tools",
        long_description=long_description,
        long_description_content_type="text/markdown",
        package_dir={"": "src"},
        packages=find_packages("src"),
        python_requires=">=3.9",
        install_requires=[
            "ortools>=9.8",
            "numpy",
            "scipy",
        ],
        extras_require={
            "test": ["pytest"],
        },
        include_package_data=True,
    )
