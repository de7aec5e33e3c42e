import argparse
import logging
import math

from leafgen import FaceMode, LeafParameters, assemble, default_rng, grow, set_log_level
from leafgen.leaf_parameters import parabolic_curve


class Parameters(LeafParameters):
    """Parameters for a broad, seven-step leaf.

    Attributes:
        filename (str): name of the output mesh file.
        mode (FaceMode): face strategy used to skin the skeleton.
    """

    def __init__(self):
        super().__init__(
            main_axis_distance=0.6,
            secondary_axis_distance_base=0.7,
            secondary_axis_angle=math.pi / 4,
            scale=0.95,
            iteration_count=7,
            scale_multiplier=0.93,
            main_axis_distance_multiplier=0.95,
            angle_multiplier=1.02,
            max_side_depth=2,
            secondary_axis_distance_curve=parabolic_curve,
        )
        self.filename = "leaf.vtu"
        self.mode = FaceMode.COMPLEX_EDGE


def main():
    parser = argparse.ArgumentParser(description="Grow a leaf and save its mesh.")
    parser.add_argument("--random", action="store_true", help="sample parameters")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=None)
    args = parser.parse_args()

    logging.basicConfig()
    set_log_level("INFO")

    params = Parameters()
    if args.random:
        skeleton = grow(None, default_rng(args.seed))
    else:
        skeleton = grow(params)
    mesh = assemble(skeleton, params.mode)
    mesh.save(args.output or params.filename)


if __name__ == "__main__":
    main()
