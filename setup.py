from setuptools import setup

setup(
    name='exactcdt',
    version='0.1',
    packages=['exactcdt', 'exactcdt.grid', 'exactcdt.spatial'],
    install_requires=['numpy', 'scipy'],
    extras_require={'test':['pytest']},
    license='MIT',
    description="Exact constrained Delaunay triangulation with a Voronoi dual",
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
