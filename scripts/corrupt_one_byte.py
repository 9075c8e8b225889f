import sys
from pathlib import Path

def main():
    if len(sys.argv) != 2:
        print("Usage: corrupt_one_byte.py <file.kana>")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    b = bytearray(p.read_bytes())
    if len(b) < 24:
        print("File too small to corrupt safely.")
        raise SystemExit(2)

    # The format kind is the first preamble field and only 0 or 1 are legal.
    # Setting its low byte to 2 makes every reader reject the file.
    idx = 0
    b[idx] = 0x02
    p.write_bytes(bytes(b))
    print(f"Corrupted 1 byte at offset {idx} in {p}")

if __name__ == "__main__":
    main()
