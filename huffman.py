import heapq
import logging
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

ALPHABET_SIZE = 256
MAX_CODE_LENGTH = 255 # the container stores path lengths in a single byte


class HuffmanError(Exception):
    """Base class for every failure raised by the codec"""

class EmptyInputError(HuffmanError):
    """No symbols to build a tree from"""

class OversizedCodeError(HuffmanError):
    """A path does not fit in the one-byte length field"""

class MalformedContainerError(HuffmanError, ValueError):
    """The compressed data does not describe a consistent tree walk"""

class HuffpackIOError(HuffmanError, OSError):
    pass

class InputUnavailableError(HuffpackIOError):
    pass

class OutputUnwritableError(HuffpackIOError):
    pass


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol: Optional[int] = None, frequency: int = 0):
        self.symbol = symbol    # byte or None
        self.frequency = frequency
        self.left: Optional["HuffmanNode"] = None
        self.right: Optional["HuffmanNode"] = None

    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency})"


def freq_table(data: bytes) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def build_huffman_tree(frequency_table: Dict[int, int]) -> HuffmanNode: # frequency_table: dict of symbol -> frequency
    """
    Greedy minimum-frequency merge.
    Ties are broken by insertion order: leaves go in by ascending symbol,
    merged nodes after them, so the same table always gives the same tree
    """
    if not frequency_table:
        raise EmptyInputError("cannot build a Huffman tree without any symbols")

    # heap entries are (frequency, sequence, node) so nodes are never compared
    priority_queue = []
    sequence = 0
    for symbol in sorted(frequency_table):
        priority_queue.append((frequency_table[symbol], sequence, HuffmanNode(symbol, frequency_table[symbol])))
        sequence += 1
    heapq.heapify(priority_queue)

    # One distinct symbol: hang it on the left of an artificial root so it still gets a path
    if len(priority_queue) == 1:
        leaf = priority_queue[0][2]
        root = HuffmanNode(None, leaf.frequency)
        root.left = leaf
        return root

    # Build the tree
    while len(priority_queue) > 1:
        left_freq, _, left = heapq.heappop(priority_queue)
        right_freq, _, right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left_freq + right_freq) # internal node with combined frequency
        merged_node.left = left
        merged_node.right = right
        heapq.heappush(priority_queue, (merged_node.frequency, sequence, merged_node))
        sequence += 1

    logger.debug("built Huffman tree over %d symbols", len(frequency_table))
    return priority_queue[0][2] # root of the tree


def generate_huffman_codes(root: HuffmanNode) -> Dict[int, str]: # root: root of the Huffman tree
    codes: Dict[int, str] = {}
    stack = [(root, '')]
    while stack:
        node, current_code = stack.pop()

        # Leaf node -> assign code
        if node.is_leaf():
            codes[node.symbol] = current_code
            continue

        if node.right is not None:
            stack.append((node.right, current_code + '0'))
        if node.left is not None:
            stack.append((node.left, current_code + '1'))

    return codes # return the mapping of symbols to their corresponding Huffman codes


def build_code_table(code_map: Dict[int, str]) -> List[Optional[str]]:
    """
    Spread a symbol -> path mapping over all 256 byte values.
    Symbols that never occurred keep None
    """
    table: List[Optional[str]] = [None] * ALPHABET_SIZE
    for symbol, path in code_map.items():
        if not 0 <= symbol < ALPHABET_SIZE:
            raise HuffmanError(f"symbol {symbol} is not a byte value")
        table[symbol] = path
    return table


def code_table_for(data: bytes) -> List[Optional[str]]:
    root = build_huffman_tree(freq_table(data))
    return build_code_table(generate_huffman_codes(root))


def format_code_listing(code_map: Dict[int, str]) -> Iterator[str]:
    for symbol in sorted(code_map):
        yield f"{symbol}: {code_map[symbol]}"
