# error.py
"""""
Error types shared by every engine module.

Internals raise these; the public entry points (MathEngine.evaluate,
Solver.*, ExactEngine.evaluate, Serializer.deserialize_from_json,
CellSheet.load_state) catch them and hand back an empty / None result instead.
"""""


class MathError(Exception):
    def __init__(self, message, code="9999", equation=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.equation = equation

    def __str__(self):
        description = ERROR_MESSAGES.get(self.code, "")
        return f"[{self.code}] {description}{self.message}"


class SyntaxError(MathError):
    pass

class CalculationError(MathError):
    pass

class SolverError(MathError):
    pass

class SerializationError(MathError):
    pass



Error_Dictionary = {

    "2" : "Scientific Calculation Error",
    "3" : "Parser / Solver Error",
    "4" : "Persistence / UI Error",
    "5" : "Configuration Error",
    "9" : "Runtime Error"

}

#Error Messages are structured in:
# 1. Digit: Main Error
# 2. Digit: Detail
# 3. and 4. Digit: Error Number



ERROR_MESSAGES = {
    "2000" : "Unknown function: ", # + function name
    "2001" : "Function needs '(' : ", # + function name
    "2002" : "Factorial too large: ", # + n
    "2003" : "Summation range too large: ", # + range
    "2004" : "Invalid bounds: ", # + bounds


    "3000" : "Missing opening bracket: ", # + Given Problem
    "3001" : "Empty expression.",
    "3002" : "Multiple variables in problem: ", # + Given Problem
    "3003" : "Division by zero",
    "3004" : "Invalid operator: ", # + operator
    "3005" : "Non linear problem. ",
    "3007" : "Unsupported power in system: ",
    "3008" : "Malformed number: ",
    "3009" : "Missing ')'. ",
    "3011" : "Unexpected token: ", # + Token
    "3012" : "Invalid equation: ", # + Equation
    "3013" : "Infinite solutions.",
    "3014" : "No solution",
    "3016" : "Variable count does not match equation count: ",
    "3017" : "Singular system.",
    "3018" : "Too many equations: ",
    "3019" : "Unexpected character: ", # + char
    "3020" : "Trailing input: ", # + rest
    "3031" : "Variable has no numeric value: ", # + name


    "4001" : "Malformed persisted data: ",
    "4002" : "Calculation already running!",
    "4003" : "Expected a list of nodes, got: ", # + type


    "5001" : "Invalid setting: ", # + key


    "9999" : "Unexpected error: " #+error
}
