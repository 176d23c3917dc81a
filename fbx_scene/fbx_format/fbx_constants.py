"""Constants for the FBX node/property stream."""

# Property cell type codes (one ASCII byte per cell in the binary format)
CELL_I16 = "Y"
CELL_BOOL = "C"
CELL_I32 = "I"
CELL_I64 = "L"
CELL_F32 = "F"
CELL_F64 = "D"
CELL_STRING = "S"
CELL_BINARY = "R"

# Array cells (compressed or raw in the file; always decoded by the tokenizer)
CELL_VEC_F32 = "f"
CELL_VEC_F64 = "d"
CELL_VEC_I64 = "l"
CELL_VEC_I32 = "i"
CELL_VEC_BOOL = "b"

SCALAR_INT_CELLS = (CELL_I16, CELL_I32, CELL_I64)
SCALAR_CELLS = (CELL_I16, CELL_BOOL, CELL_I32, CELL_I64, CELL_F32, CELL_F64)
ARRAY_CELLS = (CELL_VEC_F32, CELL_VEC_F64, CELL_VEC_I64, CELL_VEC_I32, CELL_VEC_BOOL)
ALL_CELLS = SCALAR_CELLS + (CELL_STRING, CELL_BINARY) + ARRAY_CELLS

# numpy dtype names for array cells
ARRAY_DTYPES = {
    CELL_VEC_F32: "float32",
    CELL_VEC_F64: "float64",
    CELL_VEC_I64: "int64",
    CELL_VEC_I32: "int32",
    CELL_VEC_BOOL: "bool",
}

# Separator between the human-readable name and the class name in object
# name-class strings ("Cube\x00\x01Model")
NAME_CLASS_SEPARATOR = "\x00\x01"

# Top-level node names
NODE_HEADER_EXTENSION = "FBXHeaderExtension"
NODE_DEFINITIONS = "Definitions"
NODE_OBJECTS = "Objects"
NODE_CONNECTIONS = "Connections"

# Generic property block (`Properties70` in FBX 7.x) and its entries
NODE_PROPERTIES70 = "Properties70"
NODE_PROPERTY = "P"
NODE_BINARY_DATA = "BinaryData"
PROPERTY_TYPE_BLOB = "Blob"

# Largest representable triangulated polygon-vertex count (u32)
MAX_TRIANGULATED_INDEX_COUNT = 0xFFFFFFFF

# Property flag bits
FLAG_ANIMATABLE = 1 << 1
FLAG_ANIMATED = 1 << 2
FLAG_USER_DEFINED = 1 << 4
FLAG_HIDDEN = 1 << 5
LOCKED_MEMBER_SHIFT = 7
LOCKED_MEMBER_MASK = 0xF << LOCKED_MEMBER_SHIFT
