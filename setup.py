"""
Setup script for labelimport package.
"""

from setuptools import setup, find_packages

requirements = [
    "numpy>=1.21",
    "requests>=2.25",
    "zarr>=2.10",
    "tqdm>=4.58.0",
]

extras_require = {
    # Development and testing
    "test": [
        "pytest>=6.0.0",
    ],
}

if __name__ == "__main__":
    setup(
        name='labelimport',
        version='0.1.0',
        description='Import Z-sliced label slabs into a remote volumetric store',
        author='zyx',
        author_email='yuxiang.jeffrey.zhang@gmail.com',
        packages=find_packages(where="src"),
        package_dir={"": "src"},
        install_requires=requirements,
        extras_require=extras_require,
        entry_points={
            'console_scripts': [
                'labelimport=labelimport.cli.main:main',
            ],
        },
        python_requires='>=3.8',
    )
