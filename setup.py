from setuptools import setup

setup(
    name='zone-defense',
    version='0.1.0',
    description='Prompt for a firewalld zone the first time a network connection is used',
    license='MPL-2.0',
    packages=['zonedefense'],
    python_requires='>=3.9',
    install_requires=[
        # Usually provided by the distribution (python3-gi) together with
        # the Gtk 4, libadwaita and libnm typelibs
        'PyGObject>=3.50',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'zone-defense = zonedefense.main:main',
        ],
    },
)
