from setuptools import setup


setup(name='fincalc',
      version='0.1',
      description='Financial math formulas: PV, FV, NPV, IRR, XIRR, amortization, WACC, CAPM',
      packages=['fincalc'],
      install_requires=['numpy', 'pyyaml', 'pytz'],
      extras_require={'test': ['pytest', 'scipy']},
      include_package_data=True,
      package_data={'fincalc': ['defaults.yml']}
      )
