"""Allow ``python -m hessian_estimator``."""

from hessian_estimator.estimate import main

if __name__ == "__main__":
    raise SystemExit(main())
