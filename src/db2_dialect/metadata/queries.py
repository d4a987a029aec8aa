"""Catalog queries for Db2 LUW.

Column aliases are part of the contract with ``metadata.mapper``; note the
mixed-case ``"Size"`` and ``"Type"``.
"""

test_connection = "SELECT 1 FROM SYSIBM.SYSDUMMY1"

current_database = "select current_server as NAME from sysibm.sysdummy1"

fetch_tables = """
SELECT
  T.TABNAME AS TABLENAME,
  CASE WHEN T.TYPE = 'V' THEN 1 ELSE 0 END AS ISVIEW,
  T.COLCOUNT AS NUMBEROFCOLUMNS,
  CURRENT SERVER AS TABLECATALOG,
  CURRENT SERVER AS DBNAME,
  TRIM(T.TABSCHEMA) AS TABLESCHEMA,
  CURRENT SERVER || '/' || TRIM(T.TABSCHEMA) || '/'
    || CASE WHEN T.TYPE = 'V' THEN 'views' ELSE 'tables' END
    || '/' || T.TABNAME AS TREE
FROM SYSCAT.TABLES T
WHERE T.TYPE IN ('T', 'V')
  AND T.TABSCHEMA NOT LIKE 'SYS%'
ORDER BY T.TABSCHEMA, T.TABNAME
"""

fetch_columns = """
SELECT
  C.COLNAME AS COLUMNNAME,
  C.DEFAULT AS DEFAULTVALUE,
  CASE C.NULLS WHEN 'Y' THEN 'YES' ELSE 'NO' END AS ISNULLABLE,
  C.LENGTH AS "Size",
  C.TYPENAME AS "Type",
  CURRENT SERVER AS TABLECATALOG,
  CURRENT SERVER AS DBNAME,
  C.TABNAME AS TABLENAME,
  TRIM(C.TABSCHEMA) AS TABLESCHEMA,
  (
    SELECT MAX(CASE TC.TYPE WHEN 'F' THEN 'R' ELSE TC.TYPE END)
    FROM SYSCAT.KEYCOLUSE K
    JOIN SYSCAT.TABCONST TC
      ON TC.CONSTNAME = K.CONSTNAME
     AND TC.TABSCHEMA = K.TABSCHEMA
     AND TC.TABNAME = K.TABNAME
    WHERE K.TABSCHEMA = C.TABSCHEMA
      AND K.TABNAME = C.TABNAME
      AND K.COLNAME = C.COLNAME
      AND TC.TYPE IN ('P', 'F')
  ) AS KEYTYPE,
  CURRENT SERVER || '/' || TRIM(C.TABSCHEMA) || '/'
    || CASE WHEN T.TYPE = 'V' THEN 'views' ELSE 'tables' END
    || '/' || C.TABNAME || '/' || C.COLNAME AS TREE
FROM SYSCAT.COLUMNS C
JOIN SYSCAT.TABLES T
  ON T.TABSCHEMA = C.TABSCHEMA
 AND T.TABNAME = C.TABNAME
WHERE T.TYPE IN ('T', 'V')
  AND C.TABSCHEMA NOT LIKE 'SYS%'
ORDER BY C.TABSCHEMA, C.TABNAME, C.COLNO
"""

fetch_functions = """
SELECT
  R.ROUTINENAME AS NAME,
  TRIM(R.ROUTINESCHEMA) AS DBSCHEMA,
  CURRENT SERVER AS DBNAME,
  TRIM(R.ROUTINESCHEMA) || '.' || R.ROUTINENAME AS SIGNATURE,
  (
    SELECT LISTAGG(P.TYPENAME, ', ') WITHIN GROUP (ORDER BY P.ORDINAL)
    FROM SYSCAT.ROUTINEPARMS P
    WHERE P.SPECIFICNAME = R.SPECIFICNAME
      AND P.ROUTINESCHEMA = R.ROUTINESCHEMA
      AND P.ROWTYPE IN ('P', 'B')
  ) AS ARGS,
  (
    SELECT MAX(P.TYPENAME)
    FROM SYSCAT.ROUTINEPARMS P
    WHERE P.SPECIFICNAME = R.SPECIFICNAME
      AND P.ROUTINESCHEMA = R.ROUTINESCHEMA
      AND P.ROWTYPE = 'C'
  ) AS RESULTTYPE,
  CURRENT SERVER || '/' || TRIM(R.ROUTINESCHEMA) || '/functions/' || R.SPECIFICNAME AS TREE
FROM SYSCAT.ROUTINES R
WHERE R.ROUTINETYPE = 'F'
  AND R.ROUTINESCHEMA NOT LIKE 'SYS%'
ORDER BY R.ROUTINESCHEMA, R.ROUTINENAME
"""
