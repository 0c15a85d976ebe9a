"""FFT wrapper operating on caller-supplied power-of-two buffers."""

from __future__ import annotations

import numpy as np

from ..core.errors import SizeMismatch


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two greater than or equal to n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


class SpectralTransform:
    """Real-input forward FFT and real-output inverse FFT.

    The transform holds no state between calls. Results are written into the
    output buffer passed by the caller; the full conjugate-symmetric spectrum
    is stored, no packed layout is used.
    """

    @staticmethod
    def _check_sizes(input_length: int, output_length: int) -> int:
        if input_length != output_length:
            raise SizeMismatch(
                f"Input and output buffers must have the same length "
                f"(got {input_length} and {output_length})",
                expected=input_length,
                actual=output_length,
            )
        if not is_power_of_two(input_length):
            raise SizeMismatch(
                f"Buffer length must be a power of two, got {input_length}",
                expected=next_power_of_two(input_length),
                actual=input_length,
            )
        return input_length

    def forward(self, real_in: np.ndarray, complex_out: np.ndarray) -> np.ndarray:
        """Forward FFT of a real signal into a complex buffer of equal length.

        Raises:
            SizeMismatch: If lengths differ or are not a power of two
        """
        n = self._check_sizes(len(real_in), len(complex_out))
        complex_out[:] = np.fft.fft(np.asarray(real_in, dtype=np.float64), n=n)
        return complex_out

    def inverse(self, complex_in: np.ndarray, real_out: np.ndarray) -> np.ndarray:
        """Inverse FFT keeping the real part, scaled so inverse(forward(x)) == x.

        Raises:
            SizeMismatch: If lengths differ or are not a power of two
        """
        n = self._check_sizes(len(complex_in), len(real_out))
        # Spectrum of a real signal is conjugate-symmetric; only bins 0..n/2 are read
        real_out[:] = np.fft.irfft(np.asarray(complex_in)[: n // 2 + 1], n=n)
        return real_out
