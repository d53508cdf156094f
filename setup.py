from setuptools import setup, find_packages

setup(
    name="thalamic-compartmental",
    version="0.1.0",
    description="Multi-compartment thalamocortical and reticular neuron models "
                "with an implicit cable solver and TC-RE network wiring",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["run_all"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
