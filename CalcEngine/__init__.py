# CalcEngine
"""""
Symbolic and numeric calculator engine.

MathEngine / Solver     numeric text pipeline (floats, complex numbers)
ExactEngine             exact pipeline over node trees (fractions, surds, π)
Serializer              node tree <-> text / JSON
CellSheet               sheet of cells with ans<N> cascades
"""""
